"""Build cleaned, optionally lemmatized corpora for word-embedding training."""

from .cleaning import CleanerMode, CleaningOptions, TextCleaner
from .config import PipelineConfig, load_config
from .detector import is_corrupted
from .lemmatizer import Lemmatizer
from .pipeline import CorpusPipeline, run_pipeline
from .types import RunStatistics

__all__ = [
    "CleanerMode",
    "CleaningOptions",
    "TextCleaner",
    "PipelineConfig",
    "load_config",
    "is_corrupted",
    "Lemmatizer",
    "CorpusPipeline",
    "run_pipeline",
    "RunStatistics",
]
