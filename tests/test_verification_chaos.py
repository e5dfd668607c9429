"""Verification Test: Chaos - process churn during snapshots and kills.

Processes appear and disappear while the tree is being read and while the
kill sequence is polling. Neither may raise; both degrade to skipping the
vanished process.
"""

import multiprocessing
import multiprocessing.pool
import random
import time

from execmon.models import TerminationOutcome
from execmon.proc_info import read_process_details
from execmon.terminator import terminate
from execmon.tree import count_nodes, take_snapshot


def dummy_worker(duration: float = 60.0) -> None:
    """A dummy worker process that sleeps for a given duration."""
    try:
        time.sleep(duration)
    except (KeyboardInterrupt, SystemExit):
        pass


def contains(forest, pid: int) -> bool:
    return any(node.pid == pid or contains(node.children, pid) for node in forest)


class TestChaos:
    """Chaos verification suite tests."""

    def test_snapshots_survive_process_churn(self):
        """
        Test that snapshots keep working while processes die mid-enumeration.
        """
        processes = []
        try:
            for _ in range(30):
                p = multiprocessing.Process(target=dummy_worker, args=(60.0,))
                p.start()
                processes.append(p)

            start_time = time.time()
            snapshots = 0
            while time.time() - start_time < 3.0:
                alive = [p for p in processes if p.is_alive()]
                for p in random.sample(alive, min(3, len(alive))):
                    p.terminate()
                if random.random() < 0.5:
                    p = multiprocessing.Process(target=dummy_worker, args=(60.0,))
                    p.start()
                    processes.append(p)

                forest = take_snapshot()
                assert count_nodes(forest) > 0
                snapshots += 1

            assert snapshots >= 3
        finally:
            for p in processes:
                if p.is_alive():
                    p.terminate()
            for p in processes:
                p.join(timeout=1.0)

    def test_snapshot_includes_children_under_parent(self):
        """
        Test that live children are placed under this process in the tree.
        """
        processes = [multiprocessing.Process(target=dummy_worker, args=(30.0,)) for _ in range(3)]
        for p in processes:
            p.start()
        try:
            forest = take_snapshot()

            for p in processes:
                assert contains(forest, p.pid)
        finally:
            for p in processes:
                p.terminate()
                p.join(timeout=1.0)

    def test_details_of_process_that_just_exited(self):
        """
        Test that reading details of a process that has gone is not an error.
        """
        p = multiprocessing.Process(target=dummy_worker, args=(60.0,))
        p.start()
        time.sleep(0.1)
        p.terminate()
        p.join(timeout=1.0)

        details = read_process_details(p.pid)

        assert details.pid == p.pid
        assert details.command_line == ""

    def test_terminate_many_concurrently(self):
        """
        Test that several kill sequences can run at once.
        """
        processes = [multiprocessing.Process(target=dummy_worker, args=(60.0,)) for _ in range(10)]
        for p in processes:
            p.start()

        try:
            with multiprocessing.pool.ThreadPool(len(processes)) as pool:
                outcomes = pool.map(lambda p: terminate(p.pid, grace_period=3.0), processes)

            assert all(outcome is TerminationOutcome.EXITED for outcome in outcomes)
        finally:
            for p in processes:
                if p.is_alive():
                    p.kill()
                p.join(timeout=1.0)
