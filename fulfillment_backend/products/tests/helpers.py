"""
Helpers for tests that hit the database from several threads at once.

Only usable from TransactionTestCase: each thread opens its own connection
and sees committed data only.
"""

import threading

from django.db import connection


def run_concurrently(target, *, count=2, timeout=30):
    """
    Start `count` threads that all call target() at the same moment.

    Returns (results, errors): return values and raised exceptions, in
    completion order.
    """
    barrier = threading.Barrier(count)
    lock = threading.Lock()
    results, errors = [], []

    def worker():
        try:
            barrier.wait(timeout=timeout)
            value = target()
        except Exception as exc:  # collected for the test to assert on
            with lock:
                errors.append(exc)
        else:
            with lock:
                results.append(value)
        finally:
            connection.close()

    threads = [threading.Thread(target=worker) for _ in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout)

    return results, errors
