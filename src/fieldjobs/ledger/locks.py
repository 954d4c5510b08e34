from contextlib import contextmanager
import threading
from typing import Iterator, Tuple
import zlib


class JobLocks:
    """Fixed pool of lock stripes; a job id always maps to the same stripe.

    Two jobs may share a stripe and serialize against each other, but the pool
    never grows with the number of jobs seen.
    """

    def __init__(self, stripes: int = 64) -> None:
        if stripes < 1:
            raise ValueError("stripes must be at least 1")
        self._stripes: Tuple[threading.Lock, ...] = tuple(threading.Lock() for _ in range(stripes))

    def __len__(self) -> int:
        return len(self._stripes)

    def lock_for(self, job_id: str) -> threading.Lock:
        return self._stripes[zlib.crc32(job_id.encode("utf-8")) % len(self._stripes)]

    @contextmanager
    def hold(self, job_id: str) -> Iterator[None]:
        with self.lock_for(job_id):
            yield
