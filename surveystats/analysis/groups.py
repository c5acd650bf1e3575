"""
Question-group detection for survey tables.

Survey exports carry, next to each question column ``Q01``, a column
``Q01_fulltext`` whose first-row value looks like
``"<local name> (<English name>) [<question text>]"``. Questions whose
English names share the same first three letters form one group.
"""

import re
from typing import Any, Dict, List, Mapping, Sequence

from pydantic import BaseModel, ConfigDict

FULLTEXT_SUFFIX = '_fulltext'
FULLTEXT_PATTERN = re.compile(r'^([^(]+)\s*\(([^)]+)\)\s*\[')
LEADING_INTEGER = re.compile(r'\s*[+-]?\d+')


class Question(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    text: str


class QuestionGroup(BaseModel):
    """A set of questions measuring one construct."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    english_name: str
    questions: List[Question]

    @property
    def variables(self) -> List[str]:
        return [q.id for q in self.questions]


def analysis_columns(rows: Sequence[Mapping[str, Any]]) -> List[str]:
    """Column names of the table, without the *_fulltext companions."""
    if not rows:
        return []
    return [c for c in rows[0].keys() if not str(c).endswith(FULLTEXT_SUFFIX)]


def _question_order(question: Question):
    # Leading integer of the suffix, so ABC2a sorts between ABC1 and ABC10
    match = LEADING_INTEGER.match(question.id[3:])
    if match is None:
        return (1, 0, question.id)
    return (0, int(match.group()), question.id)


def detect_question_groups(rows: Sequence[Mapping[str, Any]]) -> List[QuestionGroup]:
    """
    Group question columns by the English name in their full text.

    Args:
        rows: Data table (the full texts are read from the first row)

    Returns:
        Groups in order of first appearance, questions sorted by the
        number after the first three characters of their column id
    """
    if not rows:
        return []

    first = rows[0]
    groups: Dict[str, Dict[str, Any]] = {}

    for column in analysis_columns(rows):
        full_text = first.get(f"{column}{FULLTEXT_SUFFIX}")
        if not isinstance(full_text, str):
            continue
        match = FULLTEXT_PATTERN.match(full_text)
        if not match:
            continue

        name = match.group(1).strip()
        english_name = match.group(2).strip()
        key = english_name.upper()[:3]

        group = groups.setdefault(key, {
            'id': key, 'name': name, 'english_name': english_name, 'questions': []
        })
        group['questions'].append(Question(id=str(column), text=full_text))

    return [
        QuestionGroup(
            id=g['id'],
            name=g['name'],
            english_name=g['english_name'],
            questions=sorted(g['questions'], key=_question_order),
        )
        for g in groups.values()
    ]
