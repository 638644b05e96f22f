"""Tests for DeletingPodsSet."""

import threading

from brigade_observer.pod_sets import DeletingPodsSet
from brigade_observer.types import PodKey


class TestDeletingPodsSet:
    def test_add_reports_first_observation(self):
        pods = DeletingPodsSet()
        key = PodKey("ns", "pod-a")
        assert pods.add(key) is True
        assert pods.add(key) is False
        assert key in pods
        assert len(pods) == 1

    def test_discard(self):
        pods = DeletingPodsSet()
        key = PodKey("ns", "pod-a")
        pods.add(key)
        pods.discard(key)
        pods.discard(key)
        assert key not in pods
        assert len(pods) == 0

    def test_iterates_snapshot(self):
        pods = DeletingPodsSet()
        pods.add(PodKey("ns", "a"))
        pods.add(PodKey("ns", "b"))
        for key in pods:
            pods.discard(key)
        assert len(pods) == 0

    def test_repr(self):
        pods = DeletingPodsSet()
        pods.add(PodKey("ns", "a"))
        assert repr(pods) == "<DeletingPodsSet pods=1>"

    def test_concurrent_add_first_wins_once(self):
        """Only one of many concurrent adders sees the first observation."""
        pods = DeletingPodsSet()
        key = PodKey("ns", "pod-a")
        results = []
        barrier = threading.Barrier(8)

        def add():
            barrier.wait()
            results.append(pods.add(key))

        threads = [threading.Thread(target=add) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
