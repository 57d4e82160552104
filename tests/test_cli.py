import re

import yaml

from conftest import make_png
from statement_layout.cli import load_statement_attributes, main


def write_statement(path, **company):
    attributes = {
        "id": 12,
        "company": {"name": "Example Co", "address": "1 Market St", "email": "billing@example.com", **company},
        "bill_to": ["Acme Inc", "123 Main St"],
        "issue_date": "2025-02-01",
        "start_date": "2025-01-01",
        "end_date": "2025-01-31",
        "line_items": [["<b>Date</b>", "<b>Amount</b>"], ["01/05/25", "$19.00"], ["", "<b>$19.00</b>"]],
    }
    path.write_text(yaml.safe_dump(attributes))
    return path


def test_render_command(tmp_path, capsys):
    source = write_statement(tmp_path / "statement.yaml")
    assert main(["render", str(source)]) == 0

    pdf = tmp_path / "statement.pdf"
    assert pdf.read_bytes().startswith(b"%PDF")
    assert "Wrote" in capsys.readouterr().out


def test_relative_logo_resolves_next_to_input(tmp_path):
    (tmp_path / "logo.png").write_bytes(make_png())
    source = write_statement(tmp_path / "statement.yaml", logo="logo.png")

    attributes = load_statement_attributes(source)
    assert attributes["company"]["logo"] == str(tmp_path / "logo.png")
    assert main(["render", str(source), "-o", str(tmp_path / "out.pdf")]) == 0


def test_render_error_exit_code(tmp_path, capsys):
    source = write_statement(tmp_path / "statement.yaml", logo="missing.png")
    assert main(["render", str(source)]) == 1
    assert capsys.readouterr().out.startswith("error:")


def test_sample_command(tmp_path, capsys):
    out_dir = tmp_path / "out"
    assert main(["sample", "--out-dir", str(out_dir), "--num", "2", "--seed", "1", "--rows", "3"]) == 0

    pdfs = sorted(p.name for p in out_dir.glob("*.pdf"))
    assert pdfs == ["statement_0000.pdf", "statement_0001.pdf"]
    assert "Rendering complete!" in capsys.readouterr().out


def test_config_file_is_applied(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text("page_width: 595\npage_height: 842\n")
    source = write_statement(tmp_path / "statement.yaml")

    assert main(["--config", str(config), "render", str(source)]) == 0
    pdf = (tmp_path / "statement.pdf").read_bytes()
    assert re.search(rb"/MediaBox\s*\[\s*0\s+0\s+595(\.0+)?\s+842(\.0+)?\s*\]", pdf)
