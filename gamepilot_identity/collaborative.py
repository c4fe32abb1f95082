"""
Collaborative Signals
=====================

User-based collaborative filtering over a sparse user-item matrix of
implicit ratings.

Implicit rating per session:
    explicit rating      -> rating / 5
    otherwise            -> completion term + 0.4 x log-scaled duration

A candidate's collaborative score is the similarity-weighted mean rating
given to it by positively-similar users. It is 0 when fewer than
``min_data_points`` other users have rated the candidate.
"""

import logging
import math
import threading
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
from scipy.sparse import csr_matrix
from sklearn.metrics.pairwise import cosine_similarity

from .config import MIN_DATA_POINTS
from .models import GameSession
from .utils import clamp

logger = logging.getLogger(__name__)

LOG_DURATION_CAP = math.log1p(240.0)


def implicit_rating(session: GameSession) -> float:
    """Estimate how much a player liked a game from one session."""
    if session.rating is not None:
        return clamp(session.rating / 5.0)
    if session.completed is True:
        base = 0.6
    elif session.completed is False:
        base = 0.2
    else:
        base = 0.4
    engagement = min(1.0, math.log1p(session.effective_duration) / LOG_DURATION_CAP)
    return clamp(base + 0.4 * engagement)


def implicit_ratings(sessions: Iterable[GameSession]) -> Dict[str, float]:
    """Mean implicit rating per game id."""
    per_game: Dict[str, List[float]] = defaultdict(list)
    for session in sessions:
        per_game[session.game_id].append(implicit_rating(session))
    return {game_id: float(np.mean(values)) for game_id, values in per_game.items()}


class CollaborativeModel:
    """
    In-memory user-item rating store.

    The CSR matrix is rebuilt lazily after writes.
    """

    def __init__(self, min_data_points: int = MIN_DATA_POINTS):
        self.min_data_points = min_data_points
        self._ratings: Dict[str, Dict[str, float]] = {}
        self._lock = threading.RLock()
        self._matrix: Optional[csr_matrix] = None
        self._users: List[str] = []
        self._games: Dict[str, int] = {}

    def add_user(self, user_id: str, sessions: Sequence[GameSession]) -> None:
        """Register (or replace) a user's implicit ratings."""
        ratings = implicit_ratings(sessions)
        with self._lock:
            self._ratings[user_id] = ratings
            self._matrix = None

    def add_ratings(self, user_id: str, ratings: Dict[str, float]) -> None:
        with self._lock:
            self._ratings[user_id] = {g: clamp(r) for g, r in ratings.items()}
            self._matrix = None

    def remove_user(self, user_id: str) -> bool:
        with self._lock:
            removed = self._ratings.pop(user_id, None) is not None
            if removed:
                self._matrix = None
            return removed

    @property
    def user_count(self) -> int:
        return len(self._ratings)

    def _build(self) -> Tuple[csr_matrix, List[str], Dict[str, int]]:
        with self._lock:
            if self._matrix is None:
                users = sorted(self._ratings)
                games = sorted({g for r in self._ratings.values() for g in r})
                game_index = {g: i for i, g in enumerate(games)}
                rows, cols, data = [], [], []
                for row, user in enumerate(users):
                    for game, rating in self._ratings[user].items():
                        rows.append(row)
                        cols.append(game_index[game])
                        data.append(rating)
                self._matrix = csr_matrix(
                    (data, (rows, cols)), shape=(len(users), len(games))
                )
                self._users = users
                self._games = game_index
                logger.debug("Built %dx%d user-item matrix", len(users), len(games))
            return self._matrix, self._users, self._games

    def score_candidates(
        self,
        user_id: str,
        user_ratings: Dict[str, float],
        game_ids: Sequence[str],
    ) -> Dict[str, float]:
        """
        Collaborative score for each candidate game.

        Args:
            user_id: Requesting user; excluded from the neighbourhood
            user_ratings: The requesting user's implicit ratings
            game_ids: Candidate game ids

        Returns:
            Mapping game_id -> score in [0, 1]
        """
        scores = {game_id: 0.0 for game_id in game_ids}
        matrix, users, games = self._build()
        if matrix.shape[0] == 0 or not user_ratings:
            return scores

        others = np.array([u != user_id for u in users])
        if not others.any():
            return scores

        cols = [games[g] for g in user_ratings if g in games]
        if not cols:
            return scores
        query = csr_matrix(
            ([user_ratings[g] for g in user_ratings if g in games],
             ([0] * len(cols), cols)),
            shape=(1, matrix.shape[1]),
        )
        sims = cosine_similarity(query, matrix).ravel()
        sims[~others] = 0.0

        csc = matrix.tocsc()
        for game_id in game_ids:
            col = games.get(game_id)
            if col is None:
                continue
            start, end = csc.indptr[col], csc.indptr[col + 1]
            raters = csc.indices[start:end]
            ratings = csc.data[start:end]
            mask = others[raters]
            if int(mask.sum()) < self.min_data_points:
                continue
            weights = sims[raters][mask]
            positive = weights > 0
            if not positive.any():
                continue
            score = float(np.dot(weights[positive], ratings[mask][positive]) / weights[positive].sum())
            scores[game_id] = clamp(score)
        return scores
