"""Tests for keyword substitution."""

import random
from datetime import datetime

import pytest

from scriptflow.pipeline import KeywordSubstituter, RunContext, contrast_colour
from scriptflow.pipeline.keywords import DARK_COLOUR, LIGHT_COLOUR, PALETTE


@pytest.fixture
def folder(tmp_path):
    folder = tmp_path / "summer_trip"
    folder.mkdir()
    return folder


def _substituter(folder, environ=None, seed=1):
    return KeywordSubstituter(
        RunContext.create(folder, seed=seed),
        environ=environ or {},
        clock=lambda: datetime(2023, 3, 31, 14, 5, 9),
        rng=random.Random(seed),
    )


class TestContrastColour:
    def test_light_background_gets_dark_text(self):
        assert contrast_colour("#ffffff") == DARK_COLOUR

    def test_dark_background_gets_light_text(self):
        assert contrast_colour("#000000") == LIGHT_COLOUR

    def test_threshold_is_exclusive(self):
        assert contrast_colour("#808080") == LIGHT_COLOUR


class TestRunContext:
    def test_seeded_constant_colour(self, folder):
        context = RunContext.create(folder, seed=0)
        assert context.constant_colour == PALETTE[0]
        assert context.constant_contrast == contrast_colour(PALETTE[0])

    def test_unseeded_colour_is_from_palette(self, folder):
        assert RunContext.create(folder).constant_colour in PALETTE


class TestKeywordSubstituter:
    def test_env(self, folder):
        sub = _substituter(folder, {"TITLE": "My_Big_Day"})
        assert sub.substitute("<ENV_TITLE>!") == "My Big Day!"

    def test_missing_env_is_empty(self, folder):
        assert _substituter(folder).substitute("[<ENV_NOPE>]") == "[]"

    def test_folder(self, folder):
        sub = _substituter(folder)
        assert sub.substitute("<FOLDER_NAME>") == "summer_trip"
        assert sub.substitute("<FOLDER_TITLE>") == "summer trip"

    def test_date(self, folder):
        sub = _substituter(folder)
        assert sub.substitute("<DATE_%A %d %B. %Y>") == "Friday 31 March. 2023"
        assert sub.substitute("<DATE_%d-%m-%y>") == "31-03-23"
        assert sub.substitute("<DATE_%H:%M:%S>") == "14:05:09"

    def test_random_video(self, folder):
        for name in ("a.mp4", "b.MOV", "notes.txt"):
            (folder / name).write_text("x")

        result = _substituter(folder).substitute("<RANDOM_VIDEO>")

        assert result in {str(folder.resolve() / "a.mp4"), str(folder.resolve() / "b.MOV")}

    def test_random_video_without_videos_left_alone(self, folder):
        assert _substituter(folder).substitute("<RANDOM_VIDEO>") == "<RANDOM_VIDEO>"

    def test_random_video_filter(self, folder):
        (folder / "blue_sky.mp4").write_text("x")
        (folder / "red_sky.mp4").write_text("x")

        sub = _substituter(folder)

        assert sub.substitute("<RANDOM_VIDEO_FILTER_blue>") == str(folder.resolve() / "blue_sky.mp4")
        assert sub.substitute("<RANDOM_VIDEO_FILTER_green>") == "<RANDOM_VIDEO_FILTER_green>"

    def test_random_colour_pairs_with_contrast(self, folder):
        colour, contrast = _substituter(folder).substitute("<RANDOM_COLOUR>|<RANDOM_CONTRAST_COLOUR>").split("|")
        assert colour in PALETTE
        assert contrast == contrast_colour(colour)

    def test_constant_colour_is_stable_for_the_run(self, folder):
        context = RunContext.create(folder, seed=42)
        first = KeywordSubstituter(context, environ={})
        second = KeywordSubstituter(context, environ={})

        values = {
            sub.substitute("<CONSTANT_RANDOM_COLOUR>/<CONSTANT_CONTRAST_COLOUR>")
            for sub in (first, second, first)
        }

        assert values == {f"{context.constant_colour}/{context.constant_contrast}"}

    def test_unknown_placeholder_untouched(self, folder):
        assert _substituter(folder).substitute("<SOMETHING_ELSE>") == "<SOMETHING_ELSE>"

    def test_calc(self, folder):
        sub = _substituter(folder, {"W": "1920"})
        assert sub.substitute("<CALC_1920/2>") == "960"
        assert sub.substitute("<CALC_50%*1080>") == "540"
        assert sub.substitute("<CALC_<ENV_W>/4>") == "480"

    def test_invalid_calc_left_alone(self, folder):
        sub = _substituter(folder)
        assert sub.substitute("<CALC_1/0>") == "<CALC_1/0>"
        assert sub.substitute("<CALC_abc>") == "<CALC_abc>"

    def test_families_combine(self, folder):
        sub = _substituter(folder, {"NAME": "Ann"})
        assert sub.substitute("<ENV_NAME> <FOLDER_TITLE> <CALC_2*3>") == "Ann summer trip 6"

    def test_substitute_parameters_escapes_json(self, folder):
        sub = _substituter(folder, {"QUOTE": 'say "hi" \\ bye'})

        params = sub.substitute_parameters({"text": "<ENV_QUOTE>", "size": 24, "box": True})

        assert params == {"text": 'say "hi" \\ bye', "size": 24, "box": True}

    def test_substitute_parameters_without_placeholders(self, folder):
        params = {"input": "a.mp4", "width": 1280}
        assert _substituter(folder).substitute_parameters(params) == params

    def test_substitute_parameters_non_ascii(self, tmp_path):
        folder = tmp_path / "été_2023"
        folder.mkdir()
        (folder / "café_intro.mp4").write_text("x")
        (folder / "beach.mp4").write_text("x")

        params = _substituter(folder, {"TITLE": "Ça va"}).substitute_parameters({
            "input": "<RANDOM_VIDEO_FILTER_café>",
            "text": "<ENV_TITLE> / <FOLDER_TITLE>",
        })

        assert params["input"] == str(folder.resolve() / "café_intro.mp4")
        assert params["text"] == "Ça va / été 2023"
