import json

import pytest

from unwrapped.layout import DEFAULT_WIDGETS, Layout, WidgetSpec, load_layout
from unwrapped.metrics.engine import aggregate_user_year
from unwrapped.pages import render_generation, render_user_page
from unwrapped.themes import PALETTES, pick_theme
from unwrapped.widgets.registry import WIDGETS


@pytest.fixture
def stats(make_movie, make_episode, engine_cfg):
    records = [
        make_movie(1, "2025-02-01T20:00:00", title="Heat <1995>", actors=["Al Pacino"], directors=["Michael Mann"]),
        make_episode(2, "2025-02-01T22:00:00", show="Lost", minutes=45),
        make_episode(3, "2025-02-02T22:00:00", show="Lost", minutes=45, episode=2),
    ]
    return aggregate_user_year(records, engine_cfg, user_id="42").stats


def test_every_default_widget_is_registered():
    import unwrapped.pages  # noqa: F401

    assert set(DEFAULT_WIDGETS) <= set(WIDGETS.keys())


def test_page_renders_all_widgets_and_charts(stats, cfg, tmp_path):
    page = render_user_page(stats, cfg, Layout.default(), tmp_path, user_name="Ann")
    html = page.read_text(encoding="utf-8")

    assert page.name == "index.html"
    assert "Plex Unwrapped 2025" in html
    assert "Ann" in html
    assert "Heat &lt;1995&gt;" in html
    assert "Lost" in html
    for chart in ("month", "dow", "hour"):
        assert (page.parent / "charts" / f"{chart}.png").read_bytes()[:4] == b"\x89PNG"


def test_empty_year_still_renders(cfg, engine_cfg, tmp_path):
    empty = aggregate_user_year([], engine_cfg, user_id="9").stats
    page = render_user_page(empty, cfg, Layout.default(), tmp_path)
    assert "Nothing to report yet." in page.read_text(encoding="utf-8")


def test_disabled_widgets_are_skipped(stats, cfg, tmp_path):
    layout = Layout(widgets=[WidgetSpec("overview"), WidgetSpec("fun-facts", enabled=False)])
    html = render_user_page(stats, cfg, layout, tmp_path).read_text(encoding="utf-8")

    assert "Your Year" in html
    assert "Fun Facts" not in html
    assert not (tmp_path / "42" / "charts").exists()


def test_unknown_widget_is_an_error(stats, cfg, tmp_path):
    with pytest.raises(KeyError, match="Unknown widget"):
        render_user_page(stats, cfg, Layout(widgets=[WidgetSpec("nope")]), tmp_path)


def test_layout_accepts_dict_and_list_forms(tmp_path):
    p = tmp_path / "layout.json"
    p.write_text(json.dumps({"theme": {"palette": "Moss"}, "widgets": {"overview": {}, "quality": {"enabled": False}}}))
    layout = load_layout(p)
    assert layout.palette == "Moss"
    assert [(w.key, w.enabled) for w in layout.widgets] == [("overview", True), ("quality", False)]

    p.write_text(json.dumps({"widgets": ["overview", {"key": "top-titles", "limit": 3}]}))
    layout = load_layout(p)
    assert layout.widgets[1].config == {"limit": 3}

    assert [w.key for w in load_layout(tmp_path / "missing.json").widgets] == DEFAULT_WIDGETS


def test_theme_choice_is_stable_per_user():
    assert pick_theme("42") == pick_theme("42")
    assert pick_theme("42", palette="Lagoon") is PALETTES["Lagoon"]


def test_render_generation_writes_one_folder_per_user(stats, cfg, store):
    gid = store.create_generation(2025)
    store.save_user_stats("42", stats, generation_id=gid)

    pages = render_generation(store, gid, cfg, Layout.default(), [{"user_id": "42", "friendly_name": "Ann B"}])
    assert list(pages) == ["42"]
    assert pages["42"].parent.name == "42_Ann_B"
