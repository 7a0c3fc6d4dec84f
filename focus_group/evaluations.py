"""Session brief parsing: concept plus prior per-persona evaluations.

A brief is a markdown file whose YAML frontmatter describes the concept and
lists the individual evaluations; the body is the concept description.

    ---
    title: Fruco Ahumada
    type: product
    category: Salsas
    target_audience: Hogares NSE C
    evaluations:
      - {archetype: COSTENA_EMPRENDEDORA, score: 8.5, name: María José Martínez}
      - {archetype: PAISA_TRADICIONAL, score: 6, name: Luz Elena Restrepo}
    ---
    Salsa de tomate con sabor ahumado natural...
"""

from pathlib import Path

import frontmatter

from focus_group.models import Concept, PriorEvaluation


def parse_evaluations(raw: list[dict]) -> list[PriorEvaluation]:
    evaluations: list[PriorEvaluation] = []
    for item in raw:
        try:
            evaluations.append(
                PriorEvaluation(
                    archetype=str(item["archetype"]),
                    score=float(item["score"]),
                    display_name=str(item.get("name") or item["archetype"].replace("_", " ").title()),
                )
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"Malformed evaluation entry {item!r}: {exc}") from exc
    return evaluations


def load_brief(file_path: Path) -> tuple[Concept, list[PriorEvaluation]]:
    """Read a brief file.

    Returns:
        (concept, evaluations). Roster size is checked later, when the
        participants are built.

    Raises:
        ValueError: missing title or malformed evaluations.
    """
    post = frontmatter.load(str(file_path))
    meta = dict(post.metadata)

    title = str(meta.get("title", "")).strip()
    if not title:
        raise ValueError(f"Brief {file_path.name} has no 'title' in its frontmatter")

    concept = Concept(
        title=title,
        description=post.content.strip(),
        type=str(meta.get("type", "product")),
        category=str(meta.get("category", "")),
        target_audience=str(meta.get("target_audience", "")),
    )
    evaluations = parse_evaluations(list(meta.get("evaluations") or []))
    return concept, evaluations
