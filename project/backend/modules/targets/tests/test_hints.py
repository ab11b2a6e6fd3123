from modules.targets import capability_hint, capability_hints, list_targets, lookup


def test_hint_lists_enum_domains_and_defaults():
    hint = capability_hint(lookup("veo-3.1-generate-preview"))

    assert hint.startswith("### veo-3.1-generate-preview (video, long-running)")
    assert "- duration: one of 4, 6, 8; default 8" in hint
    assert '- aspect_ratio: one of "16:9", "9:16", "1:1", "21:9", "3:4", "4:3"; default "16:9"' in hint
    assert "- prompt: string (1-10000 chars); required" in hint


def test_hint_describes_media_fields_as_tags():
    hint = capability_hint(lookup("veo-3.1-generate-preview"))

    assert "- image: media reference, written as a resource tag such as <IMAGE_1/>" in hint
    assert "- reference_images: list of media reference" in hint
    assert "(at most 3)" in hint


def test_hint_shows_numeric_bounds():
    hint = capability_hint(lookup("gemini-2.5-flash"))

    assert "- temperature: number 0..2" in hint


def test_all_targets_are_covered():
    hints = capability_hints(list_targets())

    for spec in list_targets():
        assert f"### {spec.target_id} " in hints
