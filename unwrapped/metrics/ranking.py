# # Top-N ranking across content dimensions (movies, shows, episodes, genres, actors, directors)
# # plus devices / platforms. One ordering rule everywhere:
# #   plays desc -> minutes desc -> earliest observed asc -> group key asc

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pandas as pd

from ..config import EngineConfig


def _opt_int(v: Any) -> Optional[int]:
    if v is None or pd.isna(v):
        return None
    return int(v)


def _mins(v: Any) -> float:
    return round(float(v), 2)


def rank_groups(df: pd.DataFrame, key: str, cap: int) -> pd.DataFrame:
    """
    Group rows by `key` and return the top `cap` groups with columns
    key, plays, minutes, first_seen, ordered by the shared ranking rule.
    """
    if df.empty or cap <= 0:
        return pd.DataFrame(columns=[key, "plays", "minutes", "first_seen"])

    g = (
        df.groupby(key, sort=False)
        .agg(plays=("minutes", "count"), minutes=("minutes", "sum"), first_seen=("instant", "min"))
        .reset_index()
    )
    g = g.sort_values(
        ["plays", "minutes", "first_seen", key],
        ascending=[False, False, True, True],
        kind="mergesort",
    )
    return g.head(cap).reset_index(drop=True)


def _first_rows(df: pd.DataFrame, key: str) -> pd.DataFrame:
    # # df is in canonical chronological order; first row per key = earliest observation
    return df.drop_duplicates(subset=[key], keep="first").set_index(key)


def top_movies(df: pd.DataFrame, cap: int) -> List[Dict[str, Any]]:
    movies = df[df["media_kind"].eq("movie")]
    ranked = rank_groups(movies, "rating_key", cap)
    if ranked.empty:
        return []
    first = _first_rows(movies, "rating_key")
    out = []
    for r in ranked.itertuples(index=False):
        meta = first.loc[r.rating_key]
        out.append({
            "rating_key": int(r.rating_key),
            "title": str(meta["title"]),
            "year": _opt_int(meta["year"]),
            "plays": int(r.plays),
            "minutes": _mins(r.minutes),
        })
    return out


def _is_contiguous_run(numbers: pd.Series) -> bool:
    seen = {int(n) for n in numbers}
    return bool(seen) and seen == set(range(1, max(seen) + 1))


def seasons_completed_by_show(df: pd.DataFrame) -> pd.Series:
    """
    Approximate per-show count of completed seasons. A season counts when its
    watched episode numbers cover 1..max with no gaps; real season sizes are
    not available here, so trailing unwatched episodes go unnoticed.
    """
    eps = df[df["media_kind"].eq("episode")].dropna(subset=["show_id", "season", "episode"])
    if eps.empty:
        return pd.Series(dtype=int)
    per_season = eps.groupby(["show_id", "season"])["episode"].agg(_is_contiguous_run)
    return per_season.astype(int).groupby(level=0).sum().astype(int)


def top_shows(df: pd.DataFrame, cap: int) -> List[Dict[str, Any]]:
    eps = df[df["media_kind"].eq("episode")]
    ranked = rank_groups(eps, "show_id", cap)
    if ranked.empty:
        return []
    first = _first_rows(eps, "show_id")
    distinct_eps = eps.groupby("show_id")["rating_key"].nunique()
    completed = seasons_completed_by_show(eps)
    out = []
    for r in ranked.itertuples(index=False):
        meta = first.loc[r.show_id]
        out.append({
            "title": str(meta["show_name"]),
            "show_key": _opt_int(meta["show_key"]),
            "plays": int(r.plays),
            "minutes": _mins(r.minutes),
            "episodes": int(distinct_eps.get(r.show_id, 0)),
            "seasons_completed": int(completed.get(r.show_id, 0)),
        })
    return out


def top_episodes(df: pd.DataFrame, cap: int) -> List[Dict[str, Any]]:
    eps = df[df["media_kind"].eq("episode")]
    ranked = rank_groups(eps, "rating_key", cap)
    if ranked.empty:
        return []
    first = _first_rows(eps, "rating_key")
    out = []
    for r in ranked.itertuples(index=False):
        meta = first.loc[r.rating_key]
        out.append({
            "rating_key": int(r.rating_key),
            "title": str(meta["title"]),
            "show": str(meta["show_name"]),
            "season": _opt_int(meta["season"]),
            "episode": _opt_int(meta["episode"]),
            "plays": int(r.plays),
            "minutes": _mins(r.minutes),
        })
    return out


def _explode_tags(df: pd.DataFrame, col: str) -> pd.DataFrame:
    # # One event fans out into one row per tag
    x = df[["instant", "rating_key", "display_title", "minutes", col]].explode(col)
    x = x.dropna(subset=[col])
    return x.rename(columns={col: "name"}).reset_index(drop=True)


def top_tags(df: pd.DataFrame, col: str, cap: int, total_minutes: float, with_titles: bool = False) -> List[Dict[str, Any]]:
    tags = _explode_tags(df, col)
    ranked = rank_groups(tags, "name", cap)
    if ranked.empty:
        return []

    titles: Dict[str, List[str]] = {}
    if with_titles:
        uniq = tags.drop_duplicates(subset=["name", "display_title"], keep="first")
        for name, grp in uniq.groupby("name", sort=False):
            titles[str(name)] = [str(t) for t in grp["display_title"].head(3)]

    out = []
    for r in ranked.itertuples(index=False):
        entry: Dict[str, Any] = {
            "name": str(r.name),
            "plays": int(r.plays),
            "minutes": _mins(r.minutes),
        }
        if with_titles:
            entry["titles"] = titles.get(str(r.name), [])
        else:
            pct = (float(r.minutes) / total_minutes * 100.0) if total_minutes > 0 else 0.0
            entry["percentage"] = round(min(max(pct, 0.0), 100.0), 1)
        out.append(entry)
    return out


def top_devices(df: pd.DataFrame, cap: int) -> List[Dict[str, Any]]:
    ranked = rank_groups(df, "device", cap)
    if ranked.empty:
        return []
    # # Device's platform = the platform it reported most often (ties: alphabetical)
    pairs = df.groupby(["device", "platform"]).size().reset_index(name="n")
    pairs = pairs.sort_values(["device", "n", "platform"], ascending=[True, False, True], kind="mergesort")
    platform_of = pairs.drop_duplicates(subset=["device"], keep="first").set_index("device")["platform"]
    return [
        {
            "device": str(r.device),
            "platform": str(platform_of.get(r.device, "")),
            "plays": int(r.plays),
            "minutes": _mins(r.minutes),
        }
        for r in ranked.itertuples(index=False)
    ]


def top_platforms(df: pd.DataFrame, cap: int) -> List[Dict[str, Any]]:
    ranked = rank_groups(df, "platform", cap)
    return [
        {"platform": str(r.platform), "plays": int(r.plays), "minutes": _mins(r.minutes)}
        for r in ranked.itertuples(index=False)
    ]


def rank_all(df: pd.DataFrame, cfg: EngineConfig) -> Dict[str, List[Dict[str, Any]]]:
    total_minutes = float(df["minutes"].sum()) if not df.empty else 0.0
    return {
        "top_movies": top_movies(df, cfg.max_top_titles),
        "top_shows": top_shows(df, cfg.max_top_titles),
        "top_episodes": top_episodes(df, cfg.max_top_titles),
        "top_genres": top_tags(df, "genres", cfg.max_top_people, total_minutes),
        "top_actors": top_tags(df, "actors", cfg.max_top_people, total_minutes, with_titles=True),
        "top_directors": top_tags(df, "directors", cfg.max_top_people, total_minutes, with_titles=True),
        "top_devices": top_devices(df, cfg.max_top_devices),
        "top_platforms": top_platforms(df, cfg.max_top_devices),
    }
