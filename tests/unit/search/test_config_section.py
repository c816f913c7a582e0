"""Unit tests for config-section extraction from markdown."""

import pytest

from klipper_docs_mcp.search.config_section import extract_config_section, option_variants


def test_heading_block_stops_before_next_sibling() -> None:
    text = "### [bed_mesh]\nfoo\n### [extruder]\nbar"

    assert extract_config_section(text, "bed_mesh") == "### [bed_mesh]\nfoo"


def test_underscore_variant_matches_spaced_label() -> None:
    text = "intro\n\n### [bed mesh]\nmesh options\n"

    assert extract_config_section(text, "bed_mesh") == "### [bed mesh]\nmesh options"


def test_hyphen_variant_matches_underscored_label() -> None:
    text = "### [stepper_x]\nstep_pin: PA0\n### [stepper_y]\n"

    assert extract_config_section(text, "stepper-x") == "### [stepper_x]\nstep_pin: PA0"


def test_match_is_case_insensitive_and_allows_label_suffix() -> None:
    text = "## Drivers\n### [TMC2209 stepper_x]\nuart_pin: PC11\n## Other\n"

    block = extract_config_section(text, "tmc2209")

    assert block == "### [TMC2209 stepper_x]\nuart_pin: PC11"


def test_deeper_headings_stay_inside_the_block() -> None:
    text = "## [printer]\nkinematics\n### Options\nmax_velocity\n## [mcu]\nserial\n"

    block = extract_config_section(text, "printer")

    assert block == "## [printer]\nkinematics\n### Options\nmax_velocity"


def test_hash_comments_inside_code_fences_are_not_headings() -> None:
    text = (
        "### [extruder]\n"
        "```\n"
        "# This is a config comment\n"
        "[extruder]\n"
        "step_pin: PA0\n"
        "```\n"
        "after the example\n"
        "### [heater_bed]\n"
        "bed heater\n"
    )

    block = extract_config_section(text, "extruder")

    assert block is not None
    assert block.startswith("### [extruder]")
    assert "# This is a config comment" in block
    assert "after the example" in block
    assert "heater_bed" not in block


def test_bare_label_gets_enclosing_heading_as_context() -> None:
    text = (
        "## Extruder setup\n"
        "\n"
        "Some text\n"
        "\n"
        "```\n"
        "[extruder]\n"
        "step_pin: PA0\n"
        "nozzle_diameter: 0.4\n"
        "```\n"
        "\n"
        "## Next\n"
    )

    block = extract_config_section(text, "extruder")

    assert block == "## Extruder setup\n\n[extruder]\nstep_pin: PA0\nnozzle_diameter: 0.4\n```"


def test_bare_label_stops_at_next_label() -> None:
    text = "[stepper_x]\nstep_pin: PA1\n[stepper_y]\nstep_pin: PA2\n"

    assert extract_config_section(text, "stepper_x") == "[stepper_x]\nstep_pin: PA1"


def test_heading_match_is_preferred_over_bare_label() -> None:
    text = "```\n[probe]\npin: PB7\n```\n\n### [probe]\nprobe docs\n"

    assert extract_config_section(text, "probe") == "### [probe]\nprobe docs"


def test_brackets_in_requested_option_are_ignored() -> None:
    text = "### [bed_mesh]\nfoo\n"

    assert extract_config_section(text, "[bed_mesh]") == "### [bed_mesh]\nfoo"


@pytest.mark.parametrize(
    ("content", "option"),
    [
        ("### [extruder]\nfoo", "fan"),
        ("", "extruder"),
        ("### [extruder]\nfoo", ""),
        ("```\nunterminated fence\n### [extruder", "extruder"),
        ("### [gcode_macro (x)]\nbody", "gcode_macro (y"),
    ],
)
def test_missing_or_malformed_input_returns_none(content: str, option: str) -> None:
    assert extract_config_section(content, option) is None


def test_option_variants_are_deduplicated_in_order() -> None:
    assert option_variants("bed_mesh") == ["bed_mesh", "bed mesh"]
    assert option_variants("stepper-x") == ["stepper-x", "stepper_x"]
    assert option_variants("extruder") == ["extruder"]
