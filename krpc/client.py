"""Command that sends concurrent login requests and reports throughput."""

from __future__ import annotations

import sys
import threading
import time
from dataclasses import dataclass, field

from .application import USAGE, UsageError, init
from .channel import Channel
from .controller import Controller
from .logger import KrpcLogger
from .user import LoginRequest, LoginResponse, UserServiceStub


@dataclass
class LoadStats:
    """Thread-safe counters of successful and failed requests."""

    success_count: int = 0
    fail_count: int = 0
    elapsed: float = 0.0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record(self, success: bool) -> None:
        with self._lock:
            if success:
                self.success_count += 1
            else:
                self.fail_count += 1

    @property
    def total(self) -> int:
        return self.success_count + self.fail_count

    @property
    def qps(self) -> float:
        return self.total / self.elapsed if self.elapsed > 0 else float("inf")


def send_request(thread_id: int, stats: LoadStats, channel_factory=Channel) -> bool:
    """Send one login request and record whether it succeeded."""
    stub = UserServiceStub(channel_factory())
    pwd = "password"
    request = LoginRequest(name="zhangsan", pwd=pwd)
    response = LoginResponse()
    controller = Controller()

    stub.login(controller, request, response)

    if controller.failed():
        print(controller.error_text())
        ok = False
    elif response.result.errcode == 0:
        print(f"rpc login response success:{int(response.success)}")
        ok = True
    else:
        print(f"rpc login response error : {response.result.errmsg}")
        ok = False
    stats.record(ok)
    return ok


def run_load(thread_count: int, requests_per_thread: int, channel_factory=Channel) -> LoadStats:
    """Send requests from ``thread_count`` threads and time them."""
    stats = LoadStats()

    def worker(thread_id: int) -> None:
        for _ in range(requests_per_thread):
            send_request(thread_id, stats, channel_factory)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(thread_count)]
    start = time.perf_counter()
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    stats.elapsed = time.perf_counter() - start
    return stats


def main(argv=None) -> int:
    """Load the configuration named with ``-i`` and run the load test."""
    args = sys.argv[1:] if argv is None else list(argv)
    try:
        init(args)
    except UsageError:
        print(USAGE)
        return 1
    except OSError as exc:
        print(f"cannot read configuration: {exc}", file=sys.stderr)
        return 1

    thread_count = 10
    requests_per_thread = 1
    with KrpcLogger("MyRPC"):
        stats = run_load(thread_count, requests_per_thread)
        KrpcLogger.info(f"Total requests: {thread_count * requests_per_thread}")
        KrpcLogger.info(f"Success count: {stats.success_count}")
        KrpcLogger.info(f"Fail count: {stats.fail_count}")
        KrpcLogger.info(f"Elapsed time: {stats.elapsed} seconds")
        KrpcLogger.info(f"QPS: {stats.qps}")
    return 0


if __name__ == "__main__":
    sys.exit(main())