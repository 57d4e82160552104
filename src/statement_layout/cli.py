"""Command-line interface for rendering statements."""

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse
import numpy as np
import yaml
from faker import Faker

from .config import RenderConfig, load_config
from .errors import StatementError
from .sample_data import generate_statement_attributes
from .statement import Statement


def load_statement_attributes(path: Path) -> Dict[str, Any]:
    """Read statement attributes from YAML.

    A relative logo path is resolved against the YAML file's directory.
    """
    with open(path, "r") as f:
        attributes = yaml.safe_load(f)
    if not isinstance(attributes, dict):
        raise ValueError(f"{path} must contain a mapping of statement attributes")

    company = attributes.get("company")
    if isinstance(company, dict) and isinstance(company.get("logo"), str):
        logo = company["logo"]
        if not urlparse(logo).scheme and not Path(logo).is_absolute():
            company["logo"] = str(path.parent / logo)
    return attributes


def render_from_yaml(input_path: Path, out_path: Path, config: RenderConfig) -> Path:
    """Render one statement described by a YAML file."""
    attributes = load_statement_attributes(input_path)
    return Statement(attributes, config=config).render_file(out_path)


def render_samples(
    config: RenderConfig,
    out_dir: Path,
    num_statements: int,
    seed: int,
    num_items: int,
) -> List[Path]:
    """Render statements filled with generated sample data."""
    rng = np.random.default_rng(seed)
    fake = Faker()
    fake.seed_instance(seed)
    out_dir.mkdir(parents=True, exist_ok=True)

    print(f"Rendering {num_statements} sample statements...")
    print(f"Output directory: {out_dir}")

    paths = []
    for index in range(num_statements):
        attributes = generate_statement_attributes(rng, fake, num_items=num_items)
        path = out_dir / f"statement_{index:04d}.pdf"
        Statement(attributes, config=config).render_file(path)
        paths.append(path)
        if (index + 1) % 10 == 0:
            print(f"  Rendered {index + 1}/{num_statements} statements")

    print("\nRendering complete!")
    print(f"  PDFs: {len(paths)}")
    return paths


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="statement-layout",
        description="Render account statements to PDF",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to YAML render configuration",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log layout decisions",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    render = subparsers.add_parser("render", help="Render a statement from a YAML file")
    render.add_argument("input", type=Path, help="YAML file with statement attributes")
    render.add_argument(
        "-o", "--out",
        type=Path,
        help="Output PDF path (defaults to the input name with .pdf)",
    )

    sample = subparsers.add_parser("sample", help="Render statements with generated data")
    sample.add_argument(
        "--out-dir",
        type=Path,
        default=Path("out"),
        help="Output directory for PDFs",
    )
    sample.add_argument("--num", type=int, default=1, help="Number of statements")
    sample.add_argument("--seed", type=int, default=42, help="Random seed")
    sample.add_argument("--rows", type=int, default=5, help="Line items per statement")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    config = load_config(args.config)

    try:
        if args.command == "render":
            out_path = args.out or args.input.with_suffix(".pdf")
            path = render_from_yaml(args.input, out_path, config)
            print(f"Wrote {path}")
        else:
            render_samples(config, args.out_dir, args.num, args.seed, args.rows)
    except StatementError as exc:
        print(f"error: {exc}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
