import logging
from collections.abc import Sequence
from pathlib import Path

from ..modes import ConcreteMode
from .corpus import TestCorpus
from .models import PathFilter, Selection, TestDescriptor, WorkItem

logger = logging.getLogger(__name__)


class TestSelector:
    """Pair discovered tests with the concrete modes they support.

    Selection is a pure function of the corpus, the filter and the modes:
    previous outcomes never influence it.
    """

    __test__ = False

    def __init__(self, corpus: TestCorpus) -> None:
        self.corpus = corpus

    def select(
        self,
        root: Path,
        path_filter: PathFilter,
        modes: Sequence[ConcreteMode],
    ) -> Selection:
        descriptors: dict[str, TestDescriptor] = {}
        for descriptor in self.corpus.discover(root, path_filter):
            if descriptor.path in descriptors:
                logger.warning("Duplicate test path %s; keeping the first", descriptor.path)
                continue
            descriptors[descriptor.path] = descriptor

        items: list[WorkItem] = []
        skipped: list[TestDescriptor] = []
        for path in sorted(descriptors):
            descriptor = descriptors[path]
            applicable = [WorkItem(descriptor, mode) for mode in modes if descriptor.supports(mode)]
            if applicable:
                items.extend(applicable)
            else:
                skipped.append(descriptor)

        selection = Selection(items=tuple(items), skipped=tuple(skipped))
        if selection.is_empty:
            logger.warning(
                "No matching tests under %s (filter: %s, %d modes)",
                root,
                ", ".join(path_filter.patterns) or "<all>",
                len(modes),
            )
        else:
            logger.info(
                "Selected %d items from %d tests (%d skipped)",
                len(items),
                len(descriptors),
                len(skipped),
            )
        return selection
