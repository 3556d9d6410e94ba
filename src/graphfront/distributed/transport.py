"""
One-shot broadcast transports for the partition table

A transport delivers a fixed-length int64 array from a root worker to every
worker; `broadcast` blocks until the caller holds the root's array.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import List, Optional

import numpy as np

from ..exceptions import BroadcastError

logger = logging.getLogger(__name__)


class BroadcastTransport(ABC):
    """Capability interface for the partition table broadcast"""

    rank: int
    world_size: int

    @abstractmethod
    def broadcast(self, array: Optional[np.ndarray], length: int, root: int = 0) -> np.ndarray:
        """
        Deliver the root's array to every worker

        Args:
            array: Payload on the root, ignored elsewhere
            length: Array length, known to every worker
            root: Rank of the sending worker

        Returns:
            int64 array of `length` elements
        """

    def _check_root_payload(self, array: Optional[np.ndarray], length: int) -> np.ndarray:
        if array is None:
            raise BroadcastError(f"Root worker {self.rank} has no payload to broadcast")
        payload = np.ascontiguousarray(array, dtype=np.int64)
        if payload.shape != (length,):
            raise BroadcastError(f"Payload has shape {payload.shape}, expected ({length},)")
        return payload


class LocalBroadcast(BroadcastTransport):
    """Single-worker transport"""

    def __init__(self):
        self.rank = 0
        self.world_size = 1

    def broadcast(self, array: Optional[np.ndarray], length: int, root: int = 0) -> np.ndarray:
        if root != 0:
            raise BroadcastError(f"Invalid root {root} for a single worker")
        return self._check_root_payload(array, length).copy()


class ThreadBroadcastGroup:
    """
    In-process workers sharing a barrier

    Example:
        group = ThreadBroadcastGroup(world_size=4)
        transports = [group.endpoint(rank) for rank in range(4)]
    """

    def __init__(self, world_size: int, timeout: Optional[float] = None):
        if world_size < 1:
            raise ValueError(f"world_size must be >= 1, got {world_size}")
        self.world_size = world_size
        self.timeout = timeout
        self._barrier = threading.Barrier(world_size, timeout=timeout)
        self._slot: Optional[np.ndarray] = None

    def endpoint(self, rank: int) -> 'ThreadBroadcast':
        if not 0 <= rank < self.world_size:
            raise ValueError(f"Rank {rank} out of range [0, {self.world_size})")
        return ThreadBroadcast(self, rank)

    def endpoints(self) -> List['ThreadBroadcast']:
        return [self.endpoint(rank) for rank in range(self.world_size)]

    def abort(self):
        self._barrier.abort()


class ThreadBroadcast(BroadcastTransport):
    """Transport endpoint for one in-process worker"""

    def __init__(self, group: ThreadBroadcastGroup, rank: int):
        self.group = group
        self.rank = rank
        self.world_size = group.world_size

    def broadcast(self, array: Optional[np.ndarray], length: int, root: int = 0) -> np.ndarray:
        group = self.group
        try:
            if self.rank == root:
                try:
                    group._slot = self._check_root_payload(array, length).copy()
                except BroadcastError:
                    group.abort()
                    raise
            # First wait publishes the slot, second keeps it alive until every copy is taken
            group._barrier.wait()
            received = group._slot.copy()
            group._barrier.wait()
        except threading.BrokenBarrierError as e:
            raise BroadcastError(f"Worker {self.rank}: broadcast barrier broken") from e

        if received.shape != (length,):
            raise BroadcastError(f"Received shape {received.shape}, expected ({length},)")
        return received


class MPIBroadcast(BroadcastTransport):
    """
    mpi4py transport

    mpi4py is imported on construction so single-process runs never need an
    MPI installation.
    """

    def __init__(self, comm=None):
        from mpi4py import MPI

        self.comm = comm if comm is not None else MPI.COMM_WORLD
        self.rank = self.comm.Get_rank()
        self.world_size = self.comm.Get_size()

    def broadcast(self, array: Optional[np.ndarray], length: int, root: int = 0) -> np.ndarray:
        if self.rank == root:
            buffer = self._check_root_payload(array, length).copy()
        else:
            buffer = np.empty(length, dtype=np.int64)

        self.comm.Bcast(buffer, root=root)
        logger.debug(f"Worker {self.rank}: received {length} entries from root {root}")
        return buffer

    def barrier(self):
        """Synchronization barrier"""
        self.comm.Barrier()
