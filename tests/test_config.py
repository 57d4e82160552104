import pytest

from statement_layout.config import RenderConfig, load_config


def test_defaults_match_letter_layout():
    config = RenderConfig()
    assert (config.page_width, config.page_height) == (612.0, 792.0)
    assert config.content_width == 442.0
    assert config.repeat_table_header


def test_yaml_round_trip(tmp_path):
    path = tmp_path / "config.yaml"
    RenderConfig(image_retries=0, overflow_fallback="raise").to_yaml(path)

    loaded = load_config(path)
    assert loaded.image_retries == 0
    assert loaded.overflow_fallback == "raise"
    assert loaded == RenderConfig(image_retries=0, overflow_fallback="raise")


def test_partial_and_empty_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("table_padding: 6\n")
    assert load_config(path).table_padding == 6

    path.write_text("")
    assert load_config(path) == RenderConfig()


def test_no_path_gives_defaults():
    assert load_config() == RenderConfig()


@pytest.mark.parametrize("overrides", [
    {"overflow_fallback": "ignore"},
    {"cursor_overflow": "wrap"},
    {"page_width": 0},
    {"content_inset": 306},
    {"image_timeout": 0},
    {"image_retries": -1},
    {"shrink_step": 0},
])
def test_invalid_values(overrides):
    with pytest.raises(ValueError):
        RenderConfig(**overrides)


def test_unknown_key_is_rejected(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("page_colour: blue\n")
    with pytest.raises(TypeError):
        load_config(path)
