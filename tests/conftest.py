import time

import pytest

from core.models import CatalogEntry, FolderCatalog


def make_catalog(*names: str, directory: str = "/photos") -> FolderCatalog:
    entries = tuple(
        CatalogEntry(path=f"{directory}/{name}", name=name, size=100, mtime_ns=0)
        for name in names
    )
    return FolderCatalog(directory=directory, entries=entries)


@pytest.fixture
def wait_until():
    def _wait(predicate, timeout: float = 5.0) -> None:
        deadline = time.monotonic() + timeout
        while not predicate():
            if time.monotonic() > deadline:
                raise AssertionError("condition not met in time")
            time.sleep(0.01)

    return _wait
