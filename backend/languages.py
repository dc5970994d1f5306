"""Star totals and top-language ranking over the snapshot's repositories."""

from typing import Iterable

from models import RankedLanguage, RepositorySnapshot

TOP_LANGUAGES = 5


def parse_exclude_param(raw: str | None) -> frozenset[str]:
    """`exclude_repo=a,b` -> {"a", "b"}; blanks are dropped."""
    if not raw:
        return frozenset()
    return frozenset(name.strip() for name in raw.split(",") if name.strip())


def filter_repositories(
    repos: Iterable[RepositorySnapshot], exclude: frozenset[str] = frozenset(),
) -> list[RepositorySnapshot]:
    return [r for r in repos if r.name not in exclude]


def total_stars(repos: Iterable[RepositorySnapshot], exclude: frozenset[str] = frozenset()) -> int:
    return sum(r.star_count for r in filter_repositories(repos, exclude))


def rank_languages(
    repos: Iterable[RepositorySnapshot],
    exclude: frozenset[str] = frozenset(),
    limit: int = TOP_LANGUAGES,
) -> list[RankedLanguage]:
    """Aggregate language bytes across repositories, largest first.

    Repositories are visited most-starred first, and both sorts are stable, so
    languages with equal byte totals keep the order they were first seen in.
    """
    visible = sorted(filter_repositories(repos, exclude), key=lambda r: r.star_count, reverse=True)

    totals: dict[str, dict] = {}
    for repo in visible:
        for edge in repo.languages:
            entry = totals.get(edge.name)
            if entry is None:
                totals[edge.name] = {"color_hex": edge.color_hex, "total_bytes": edge.byte_size, "occurrences": 1}
            else:
                entry["total_bytes"] += edge.byte_size
                entry["occurrences"] += 1

    ranked = sorted(totals.items(), key=lambda item: item[1]["total_bytes"], reverse=True)
    return [RankedLanguage(name=name, **data) for name, data in ranked[:limit]]


def top_languages(repos: Iterable[RepositorySnapshot], exclude: frozenset[str] = frozenset()) -> list[str]:
    return [lang.tag for lang in rank_languages(repos, exclude)]
