"""Ranking of open activities against a participant's history."""

from __future__ import annotations

import logging
import math
from collections import Counter
from typing import Callable, Dict, List, Sequence

import jieba

from . import catalog
from .models import Activity
from .util import strip_html

TEXT_WEIGHT = 5.0
DEPARTMENT_WEIGHT = 0.5
DEPARTMENT_CAP = 8
MODULE_WEIGHT = 0.2
MODULE_CAP = 10
LABEL_WEIGHT = 0.3
LABEL_CAP = 5
POPULARITY_WEIGHT = 0.1

DEFAULT_LIMIT = 10


def activity_text(activity: Activity) -> str:
    parts = [activity.name]
    department = activity.department()
    if department is not None:
        parts.append(department.name)
    for content in (activity.conceive, activity.base_content):
        if content:
            parts.append(strip_html(content))
    return " ".join(parts)


def tokenize(activity: Activity) -> List[str]:
    tokens = (t.strip() for t in jieba.lcut(activity_text(activity), HMM=True))
    return [t for t in tokens if len(t) > 1]


def cosine_similarity(a: Counter, b: Counter) -> float:
    norm_a = math.sqrt(sum(v * v for v in a.values()))
    norm_b = math.sqrt(sum(v * v for v in b.values()))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    dot = sum(tf * b[token] for token, tf in a.items() if token in b)
    return dot / (norm_a * norm_b)


class _History:
    """Aggregate statistics of the participation history."""

    def __init__(self, history: Sequence[Activity]) -> None:
        self.ids = {a.id for a in history}
        self.vocabulary: Counter = Counter()
        self.departments: Counter = Counter()
        self.modules: Counter = Counter()
        self.labels: Counter = Counter()
        for item in history:
            self.vocabulary.update(tokenize(item))
            department = item.department()
            if department is not None:
                self.departments[department.name] += 1
            module = item.module()
            if module is not None:
                self.modules[module.value] += 1
            for label in item.labels():
                self.labels[label.id] += 1

    def classification_score(self, item: Activity) -> float:
        score = 0.0
        department = item.department()
        if department is not None:
            score += min(self.departments[department.name], DEPARTMENT_CAP) * DEPARTMENT_WEIGHT
        module = item.module()
        if module is not None:
            score += min(self.modules[module.value], MODULE_CAP) * MODULE_WEIGHT
        return score


def _content_score(history: _History, item: Activity) -> float:
    similarity = cosine_similarity(Counter(tokenize(item)), history.vocabulary)
    return similarity * TEXT_WEIGHT + history.classification_score(item)


def _popularity_score(history: _History, item: Activity) -> float:
    score = history.classification_score(item)
    for label in item.labels():
        score += min(history.labels[label.id], LABEL_CAP) * LABEL_WEIGHT
    return score + math.log1p(max(item.applicants or 0, 0)) * POPULARITY_WEIGHT


STRATEGIES: Dict[str, Callable[[_History, Activity], float]] = {
    "content": _content_score,
    "popularity": _popularity_score,
}


class Recommender:
    def __init__(self, strategy: str = "content") -> None:
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown strategy {strategy!r}")
        self.strategy = strategy

    def rank(
        self,
        history: Sequence[Activity],
        candidates: Sequence[Activity],
        limit: int = DEFAULT_LIMIT,
    ) -> List[Activity]:
        """Return the best ``limit`` candidates not already in ``history``."""
        if not history:
            return list(candidates[:limit])

        stats = _History(history)
        score = STRATEGIES[self.strategy]
        scored = [(score(stats, item), item) for item in candidates]
        # sorted() is stable, equal scores keep candidate order
        scored = sorted(scored, key=lambda pair: pair[0], reverse=True)
        if scored:
            logging.debug("Best %s score: %.4f", self.strategy, scored[0][0])
        ranked = [item for _, item in scored if item.id not in stats.ids]
        return ranked[:limit]

    def recommend(self, client, limit: int = DEFAULT_LIMIT) -> List[Activity]:
        history = catalog.participated(client)
        candidates = catalog.find(client)
        logging.info("Ranking %d candidates against %d history items", len(candidates), len(history))
        return self.rank(history, candidates, limit)
