"""
Append-only record of evaluated hyperparameter candidates.
"""

from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Union
import pandas as pd

# Score recorded for candidates for which no fold produced an error value.
# Ranking goes through Candidate.beats, which puts every scorable row ahead
# of every unscorable one whatever its MAPE.
UNSCORABLE_SCORE = -1e6

SEED_PHASE = 'seed'
OPTIMIZE_PHASE = 'optimize'

_META_COLUMNS = ['score', 'scorable', 'phase', 'n_folds']


@dataclass(frozen=True)
class Candidate:
    """One evaluated hyperparameter vector. Immutable once created."""

    params: Mapping[str, Any]
    score: float
    scorable: bool = True
    phase: str = SEED_PHASE
    n_folds: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, 'params', MappingProxyType(dict(self.params)))
        object.__setattr__(self, 'score', float(self.score))
        if self.scorable and self.score > 0:
            raise ValueError(f"Scorable candidates must have score <= 0, got {self.score}")

    def __reduce__(self):
        # mappingproxy does not pickle
        return (self.__class__, (dict(self.params), self.score, self.scorable, self.phase, self.n_folds))

    def beats(self, other: "Candidate") -> bool:
        """Strictly better than ``other``: scorable first, then higher score."""
        if self.scorable != other.scorable:
            return self.scorable
        return self.score > other.score

    def to_dict(self) -> Dict[str, Any]:
        row = dict(self.params)
        row.update({
            'score': self.score,
            'scorable': self.scorable,
            'phase': self.phase,
            'n_folds': self.n_folds
        })
        return row


class CandidateSet:
    """
    Ordered, append-only table of evaluated candidates.

    Insertion order is evaluation order. Rows are never replaced or
    removed; ``rows`` exposes an immutable snapshot.
    """

    def __init__(self, rows: Optional[Iterable[Candidate]] = None) -> None:
        self._rows: List[Candidate] = []
        for row in rows or []:
            self.append(row)

    def append(self, row: Candidate) -> None:
        if not isinstance(row, Candidate):
            raise TypeError(f"CandidateSet accepts Candidate rows, got {type(row).__name__}")
        self._rows.append(row)

    @property
    def rows(self) -> tuple:
        return tuple(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[Candidate]:
        return iter(tuple(self._rows))

    def __getitem__(self, index: int) -> Candidate:
        return self._rows[index]

    def param_rows(self) -> List[Dict[str, Any]]:
        return [dict(row.params) for row in self._rows]

    def scores(self) -> List[float]:
        return [row.score for row in self._rows]

    def by_phase(self, phase: str) -> "CandidateSet":
        return CandidateSet(row for row in self._rows if row.phase == phase)

    def best(self) -> Optional[Candidate]:
        """Highest-scoring scorable row (unscorable only if none is); the earliest one wins ties."""
        best_row = None
        for row in self._rows:
            if best_row is None or row.beats(best_row):
                best_row = row
        return best_row

    def to_frame(self, columns: Optional[Sequence[str]] = None) -> pd.DataFrame:
        """
        Flat table with one column per dimension plus score metadata.

        Args:
            columns: Dimension order (defaults to first-seen order)

        Returns:
            DataFrame in evaluation order
        """
        if columns is None:
            columns = []
            for row in self._rows:
                for name in row.params:
                    if name not in columns:
                        columns.append(name)
        columns = list(columns)

        if not self._rows:
            return pd.DataFrame(columns=columns + _META_COLUMNS)

        return pd.DataFrame([row.to_dict() for row in self._rows], columns=columns + _META_COLUMNS)

    @classmethod
    def from_frame(cls, frame: pd.DataFrame) -> "CandidateSet":
        """Rebuild a candidate set written by ``to_frame``."""
        if 'score' not in frame.columns:
            raise ValueError("Candidate table must have a 'score' column")

        dims = [c for c in frame.columns if c not in _META_COLUMNS]
        rows = []
        for record in frame.to_dict(orient='records'):
            params = {name: _native(record[name]) for name in dims}
            rows.append(Candidate(
                params=params,
                score=float(record['score']),
                scorable=bool(record.get('scorable', True)),
                phase=str(record.get('phase', SEED_PHASE)),
                n_folds=int(record.get('n_folds', 0))
            ))
        return cls(rows)

    def to_csv(self, filepath: Union[str, Path]) -> None:
        self.to_frame().to_csv(filepath, index=False)

    @classmethod
    def read_csv(cls, filepath: Union[str, Path]) -> "CandidateSet":
        return cls.from_frame(pd.read_csv(filepath))

    def __repr__(self) -> str:
        best = self.best()
        best_score = f"{best.score:.4f}" if best is not None else "n/a"
        return f"CandidateSet(rows={len(self)}, best_score={best_score})"


def _native(value: Any) -> Any:
    """Convert numpy scalars from a DataFrame record to Python numbers."""
    if hasattr(value, "item"):
        return value.item()
    return value
