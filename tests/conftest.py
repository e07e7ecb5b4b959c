"""Shared fixtures: isolated config and small collection builders."""

import pytest

from collectra import config as config_module
from collectra.core.collection import Collection
from collectra.core.models.entry import Entry


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the config file at a temp dir and clear env overrides."""
    config_dir = tmp_path / "config"
    monkeypatch.setattr(config_module, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_dir / "config.json")
    for var in (
        "COLLECTRA_LIBRARY_PATH",
        "COLLECTRA_LOG_LEVEL",
        "COLLECTRA_SEED",
        "COLLECTRA_PICK_MODE",
    ):
        monkeypatch.delenv(var, raising=False)
    config_module.reset_config()
    yield config_dir
    config_module.reset_config()


def leaf(path, weight=1, category=None, tags=None, **kwargs):
    return Entry(
        asset_path=path, weight=weight, category=category, tags=set(tags or ()), **kwargs
    )


def make_collection(name, weights, **kwargs):
    """Collection of leaves named `<name>_<i>` with the given weights."""
    return Collection(
        name=name,
        entries=[leaf(f"{name}_{i}", weight=w) for i, w in enumerate(weights)],
        **kwargs,
    )


def nest(parent, child, weight=1, tags=None):
    """Append a sub-collection entry to `parent` pointing at `child`."""
    parent.add_entry(Entry(weight=weight, tags=set(tags or ())))
    assert parent.assign_sub_collection(parent.num_entries() - 1, child)
    return parent.entries[-1]


@pytest.fixture
def hierarchy():
    """A = [a_leaf {t1}, sub -> B {x}], B = [b_0 {t2}, b_1], B tagged {b}, A tagged {root}."""
    b = Collection(
        name="B",
        entries=[leaf("b_0", tags={"t2"}), leaf("b_1")],
        collection_tags={"b"},
    )
    a = Collection(name="A", entries=[leaf("a_leaf", tags={"t1"})], collection_tags={"root"})
    nest(a, b, tags={"x"})
    return a, b
