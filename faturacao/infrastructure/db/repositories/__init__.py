from .sequence_counter_repository import SequenceCounterRepository, SqlCounterStore
from .series_repository import SeriesRepository

__all__ = [
    "SequenceCounterRepository",
    "SeriesRepository",
    "SqlCounterStore",
]
