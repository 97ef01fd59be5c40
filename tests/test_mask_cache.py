import numpy as np

from volmask.utils.mask_cache import MaskCache


def test_get_returns_a_copy():
    cache = MaskCache()
    mask = np.zeros(8, dtype=np.uint8)
    cache.put("a", mask)
    mask[0] = 255

    restored = cache.get("a")
    restored[1] = 255

    assert cache.get("a").tolist() == [0] * 8
    assert cache.get("missing") is None


def test_size_mismatch_is_ignored():
    cache = MaskCache()
    cache.put("a", np.ones((2, 2, 2), dtype=np.uint8))

    assert cache.get("a", expected_size=27) is None
    assert cache.get("a", expected_size=8).shape == (8,)


def test_least_recently_used_entry_is_evicted():
    cache = MaskCache(max_size=2)
    cache.put("a", [1])
    cache.put("b", [2])
    cache.get("a")
    cache.put("c", [3])

    assert cache.contains("a")
    assert not cache.contains("b")
    assert len(cache) == 2


def test_discard():
    cache = MaskCache()
    cache.put("a", [1])
    cache.discard("a")
    cache.discard("never-stored")

    assert len(cache) == 0
