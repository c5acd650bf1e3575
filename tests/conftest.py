"""
Shared fixtures for the surveystats tests.
"""

import os
import sys

import numpy as np
import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from surveystats.components.config import ConfigManager


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch):
    """Start every test from the default configuration."""
    for name in list(os.environ):
        if name.startswith('SURVEYSTATS_') or name == 'LOG_LEVEL':
            monkeypatch.delenv(name, raising=False)
    ConfigManager.reset()
    yield
    ConfigManager.reset()


@pytest.fixture
def scale_rows():
    """Ten respondents answering a four-item Likert scale."""
    answers = [
        [4, 5, 4, 5],
        [3, 3, 4, 3],
        [2, 2, 1, 2],
        [5, 4, 5, 5],
        [3, 4, 3, 3],
        [1, 2, 2, 1],
        [4, 4, 5, 4],
        [2, 3, 2, 2],
        [5, 5, 4, 5],
        [3, 2, 3, 3],
    ]
    return [
        {f'Q0{j + 1}': str(value) for j, value in enumerate(answer)}
        for answer in answers
    ]


@pytest.fixture
def two_factor_rows():
    """
    200 cases on six items driven by two independent latent factors.

    Items V1-V3 load on the first factor, V4-V6 on the second.
    """
    rng = np.random.RandomState(42)
    n = 200
    f1 = rng.normal(size=n)
    f2 = rng.normal(size=n)
    weights = [(0.9, f1), (0.85, f1), (0.8, f1), (0.75, f2), (0.7, f2), (0.65, f2)]

    columns = []
    for weight, factor in weights:
        noise = rng.normal(size=n) * np.sqrt(1 - weight ** 2)
        columns.append(weight * factor + noise)

    return [
        {f'V{j + 1}': float(columns[j][i]) for j in range(len(columns))}
        for i in range(n)
    ]


@pytest.fixture
def grouped_rows():
    """
    A survey export with *_fulltext companion columns.

    SAT01-SAT03 form the satisfaction group, LOY01-LOY02 the loyalty group.
    """
    texts = {
        'SAT01': 'Zufriedenheit (Satisfaction) [I am satisfied with the service]',
        'SAT02': 'Zufriedenheit (Satisfaction) [The staff was friendly]',
        'SAT03': 'Zufriedenheit (Satisfaction) [The waiting time was acceptable]',
        'LOY10': 'Treue (Loyalty) [I would recommend the company]',
        'LOY02': 'Treue (Loyalty) [I will buy again]',
    }
    answers = [
        [4, 5, 4, 5, 4],
        [3, 3, 4, 3, 3],
        [2, 2, 1, 2, 2],
        [5, 4, 5, 5, 5],
        [3, 4, 3, 3, 4],
        [1, 2, 2, 1, 1],
        [4, 4, 5, 4, 5],
        [2, 3, 2, 2, 3],
    ]
    columns = ['SAT02', 'SAT01', 'LOY10', 'SAT03', 'LOY02']
    rows = []
    for answer in answers:
        row = {}
        for column, value in zip(columns, answer):
            row[column] = str(value)
            row[f'{column}_fulltext'] = texts[column]
        rows.append(row)
    return rows
