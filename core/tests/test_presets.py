"""Tests for preset tables used by config-injector and videoGen nodes."""

from director_node.graph.presets import (
    APERTURES,
    ASPECT_RATIO_PROMPTS,
    CAMERAS,
    DIRECTOR_STYLES,
    LENSES,
    MOVEMENT_PROMPTS,
    VIDEO_PROVIDER_CONFIGS,
    build_cinematic_prompt,
    director_style_prompt,
    is_valid_combination,
    movement_prompt,
)


def test_director_style_falls_back_to_nolan():
    assert director_style_prompt("kubrick") == DIRECTOR_STYLES["kubrick"]
    assert director_style_prompt("unknown") == DIRECTOR_STYLES["nolan"]
    assert director_style_prompt(None) == DIRECTOR_STYLES["nolan"]


def test_cinematic_prompt_defaults():
    text = build_cinematic_prompt()
    assert text.startswith(CAMERAS["red_vraptor"].prompt)
    assert LENSES["cooke_s4"].prompt in text
    assert APERTURES["f4"].prompt in text
    assert text.endswith(ASPECT_RATIO_PROMPTS["21:9"])


def test_cinematic_prompt_overrides_and_unknown_keys():
    text = build_cinematic_prompt(camera="imax", lens="no_such_lens")
    assert text.startswith(CAMERAS["imax"].prompt)
    assert LENSES["cooke_s4"].prompt not in text


def test_movement_prompt_defaults_to_static():
    assert movement_prompt("dolly_in") == MOVEMENT_PROMPTS["dolly_in"]
    assert movement_prompt(None).startswith("Static shot")
    assert movement_prompt("moonwalk") == MOVEMENT_PROMPTS["static"]


def test_video_provider_combinations():
    assert is_valid_combination("minimax", "768p", 10)
    assert is_valid_combination("minimax", "1080p", 6)
    assert not is_valid_combination("minimax", "1080p", 10)
    assert is_valid_combination("veo", "1080p", 8)
    assert not is_valid_combination("veo", "768p", 5)
    assert not is_valid_combination("runway", "1080p", 5)
    assert VIDEO_PROVIDER_CONFIGS["minimax"].durations_for("720p") == ()
