"""
Unit tests for the per-call dead-end memory.
"""

import pytest

from tests.unit.mock import FakeHandler, make_format
from transmute.dead_ends import DeadEndMemory
from transmute.graph import ConversionPath, Vertex


@pytest.fixture
def path():
    handler = FakeHandler("fake", [])
    return ConversionPath(
        tuple(Vertex(handler, make_format(fmt)) for fmt in ("svg", "inter", "png"))
    )


class TestDeadEndMemory:
    @pytest.mark.smoke
    def test_empty(self, path):
        memory = DeadEndMemory()

        assert len(memory) == 0
        assert not memory.is_dead(path)
        assert path not in memory

    @pytest.mark.smoke
    def test_record_exact_path(self, path):
        memory = DeadEndMemory()
        memory.record(path)

        assert memory.is_dead(path)
        assert path.signature in memory
        assert not memory.is_dead(path.prefix(1))

    @pytest.mark.smoke
    def test_prefix_kills_extensions(self, path):
        memory = DeadEndMemory()
        memory.record(path.prefix(1))

        assert memory.is_dead(path.prefix(1))
        assert memory.is_dead(path)
        assert not memory.is_dead(path.prefix(0))

    @pytest.mark.sanity
    def test_handler_is_part_of_signature(self, path):
        other = FakeHandler("other", [])
        rerouted = path.prefix(1).extend(Vertex(other, make_format("png")))
        memory = DeadEndMemory()
        memory.record(path)

        assert not memory.is_dead(rerouted)

    @pytest.mark.sanity
    def test_clear(self, path):
        memory = DeadEndMemory()
        memory.record(path)
        memory.record(path.prefix(1))

        assert len(memory) == 2

        memory.clear()

        assert len(memory) == 0
        assert not memory.is_dead(path)

    @pytest.mark.sanity
    def test_independent_instances(self, path):
        first = DeadEndMemory()
        second = DeadEndMemory()
        first.record(path)

        assert first.is_dead(path)
        assert not second.is_dead(path)
