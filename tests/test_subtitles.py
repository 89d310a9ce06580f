"""Tests for subtitle timing and SRT / WebVTT rendering."""

from ugcgen.media.subtitles import generate_subtitles, to_srt, to_vtt


def test_cues_follow_speaking_rate():
    # 150 wpm is 2.5 words per second, so 7 words per cue
    entries = generate_subtitles(" ".join(f"w{n}" for n in range(14)), duration=30)
    assert len(entries) == 2
    assert entries[0].text.split() == [f"w{n}" for n in range(7)]
    assert entries[0].start == 0
    assert entries[0].end == entries[1].start
    assert round(entries[1].end, 2) == 5.6


def test_cues_stop_at_duration():
    entries = generate_subtitles(" ".join(["word"] * 70), duration=5)
    assert entries[-1].end == 5
    assert all(e.start < 5 for e in entries)


def test_empty_text():
    assert generate_subtitles("   ", duration=10) == []


def test_srt_format():
    entries = generate_subtitles("Hello there and welcome to the show", duration=8)
    assert to_srt(entries) == "1\n00:00:00,000 --> 00:00:02,800\nHello there and welcome to the show\n"


def test_vtt_format():
    entries = generate_subtitles("Hello there", duration=8)
    assert to_vtt(entries) == "WEBVTT\n\n00:00:00.000 --> 00:00:00.800\nHello there\n"
