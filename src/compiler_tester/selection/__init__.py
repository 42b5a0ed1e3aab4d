"""Test selection: corpus discovery, path filtering and (test, mode) pairing."""

from .corpus import CorpusError, ExtensionCorpus, ManifestCorpus, TestCorpus, open_corpus
from .models import PathFilter, Selection, TestDescriptor, WorkItem, make_group
from .selector import TestSelector

__all__ = [
    "CorpusError",
    "ExtensionCorpus",
    "ManifestCorpus",
    "PathFilter",
    "Selection",
    "TestCorpus",
    "TestDescriptor",
    "TestSelector",
    "WorkItem",
    "make_group",
    "open_corpus",
]
