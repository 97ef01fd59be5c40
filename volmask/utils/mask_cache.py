import threading
from collections import OrderedDict

import numpy as np

from volmask.utils.logger import logger


class MaskCache:
    """A thread-safe Least Recently Used (LRU) cache of mask volumes.

    Masks are stored per file id so that reselecting a file restores the
    painting done on it earlier in the session. Values are copied on the way
    in and out; callers never share a buffer with the cache.

    Example:
    >>> cache = MaskCache(max_size=8)
    >>> cache.put("scan-1", mask_data)
    >>> restored = cache.get("scan-1", expected_size=mask_data.size)

    Attributes:
    - max_size (int): The maximum number of masks kept in memory."""

    def __init__(self, max_size=16):
        self.max_size = max_size
        self.cache_dict = OrderedDict()
        self.lock = threading.Lock()

    def get(self, key, expected_size=None):
        """
        Retrieve a copy of the mask stored for ``key``.

        Args:
            key: The file id.
            expected_size (int): Voxel count of the volume being opened. A
                cached mask of a different size is ignored.

        Returns:
            A flat uint8 array, or None when nothing usable is cached.
        """
        with self.lock:
            if key not in self.cache_dict:
                return None
            self.cache_dict.move_to_end(key)
            cached = self.cache_dict[key]
        if expected_size is not None and cached.size != expected_size:
            logger.warning(
                "Ignoring cached mask for %s: %d voxels, volume has %d",
                key,
                cached.size,
                expected_size,
            )
            return None
        return cached.copy()

    def put(self, key, mask):
        """
        Store a copy of ``mask``. If the cache is full, the oldest entry is evicted.

        Args:
            key: The file id.
            mask: Array-like mask values.
        """
        value = np.array(mask, dtype=np.uint8).reshape(-1)
        with self.lock:
            if key in self.cache_dict:
                self.cache_dict.move_to_end(key)
            self.cache_dict[key] = value
            if len(self.cache_dict) > self.max_size:
                self.cache_dict.popitem(last=False)

    def discard(self, key):
        with self.lock:
            self.cache_dict.pop(key, None)

    def contains(self, key):
        with self.lock:
            return key in self.cache_dict

    def __len__(self):
        with self.lock:
            return len(self.cache_dict)
