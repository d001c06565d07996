from __future__ import annotations
import threading
import pytest # type: ignore
from nanohll.lib.commands import HLLService, status_code, split_keys
from nanohll.lib.errors import (
    ConfigError, FormatError, InvalidKeyError, NotFoundError,
    PrecisionMismatchError, StorageError,
)
from nanohll.lib.hyperloglog import HyperLogLog
from nanohll.lib.storage import FileStorage, MemoryStorage

@pytest.fixture
def service():
    return HLLService(MemoryStorage())

@pytest.mark.quick
class TestCommands:
    """PFADD / PFCOUNT / PFMERGE and friends."""

    def test_pfadd_creates_key(self, service):
        assert service.pfadd("visitors", ["alice", "bob", "carol"]) == 3
        assert service.exists("visitors")
        assert service.storage.load("visitors").precision == 14
        assert service.pfcount("visitors") == 3

    def test_pfadd_accumulates(self, service):
        service.pfadd("visitors", ["alice", "bob"])
        service.pfadd("visitors", ["bob", "carol"])
        assert service.pfcount("visitors") == 3

    def test_pfadd_empty(self, service):
        assert service.pfadd("empty", []) == 0
        assert service.exists("empty")
        assert service.pfcount("empty") == 0

    def test_default_precision(self):
        service = HLLService(MemoryStorage(), default_precision=10)
        service.pfadd("k", ["a"])
        assert service.storage.load("k").precision == 10

    def test_bad_default_precision(self):
        with pytest.raises(ConfigError):
            HLLService(MemoryStorage(), default_precision=3)

    def test_pfadd_rejects_single_string(self, service):
        with pytest.raises(TypeError):
            service.pfadd("k", "alice")
        with pytest.raises(TypeError):
            service.pfadd("k", b"alice")
        assert not service.exists("k")
        assert service.pfadd("k", ["alice"]) == 1

    def test_locks_released(self, service):
        service.pfadd("a", ["x"])
        service.pfmerge("b", ["a"])
        with pytest.raises(NotFoundError):
            service.pfmerge("c", ["missing"])
        service.delete("a")
        service.delete("never-stored")
        assert service._locks == {}

    def test_pfadd_keeps_existing_precision(self, service):
        service.storage.store("k", HyperLogLog(precision=8))
        service.pfadd("k", ["a"])
        assert service.storage.load("k").precision == 8

    def test_pfcount_union(self, service):
        service.pfadd("mon", [f"user_{i}" for i in range(0, 600)])
        service.pfadd("tue", [f"user_{i}" for i in range(400, 1000)])
        union = service.pfcount(["mon", "tue"])
        assert abs(union - 1000) / 1000 < 0.05
        assert service.pfcount("mon,tue") == union

    def test_pfcount_does_not_modify(self, service):
        service.pfadd("a", range(100))
        service.pfadd("b", range(100, 300))
        before = service.storage.load("a")
        service.pfcount(["a", "b"])
        assert service.storage.load("a") == before

    def test_pfcount_no_keys(self, service):
        assert service.pfcount([]) == 0
        assert service.pfcount("") == 0

    def test_pfcount_missing(self, service):
        service.pfadd("a", ["x"])
        with pytest.raises(NotFoundError):
            service.pfcount(["a", "missing"])

    def test_pfcount_precision_mismatch(self, service):
        service.storage.store("p10", HyperLogLog(precision=10))
        service.storage.store("p12", HyperLogLog(precision=12))
        with pytest.raises(PrecisionMismatchError):
            service.pfcount(["p10", "p12"])

    def test_pfmerge(self, service):
        service.pfadd("s1", range(0, 5000))
        service.pfadd("s2", range(2500, 7500))
        service.pfadd("s3", range(5000, 10000))
        merged = service.pfmerge("total", ["s1", "s2", "s3"])
        assert service.storage.load("total") == merged
        assert abs(service.pfcount("total") - 10000) / 10000 < 0.05
        assert service.pfcount("s1") == service.storage.load("s1").count()

    def test_pfmerge_replaces_destination(self, service):
        service.pfadd("dest", [f"old{i}" for i in range(500)])
        service.pfadd("src", ["a", "b"])
        service.pfmerge("dest", ["src"])
        assert service.pfcount("dest") == 2

    def test_pfmerge_into_source(self, service):
        service.pfadd("a", ["x", "y"])
        service.pfadd("b", ["z"])
        service.pfmerge("a", ["a", "b"])
        assert service.pfcount("a") == 3

    def test_pfmerge_no_sources(self, service):
        with pytest.raises(InvalidKeyError):
            service.pfmerge("dest", [])

    def test_pfmerge_missing_source(self, service):
        with pytest.raises(NotFoundError):
            service.pfmerge("dest", ["missing"])
        assert not service.exists("dest")

    def test_delete_and_list(self, service):
        service.pfadd("b", ["1"])
        service.pfadd("a", ["1"])
        assert service.list_keys() == ["a", "b"]
        service.delete("a")
        assert service.list_keys() == ["b"]
        service.delete("a")

    def test_invalid_key(self, service):
        with pytest.raises(InvalidKeyError):
            service.pfadd("a/b", ["x"])
        with pytest.raises(InvalidKeyError):
            service.pfmerge("", ["x"])

    def test_file_backend(self, tmp_path):
        service = HLLService(FileStorage(tmp_path))
        service.pfadd("daily_visitors", [f"user_{i}" for i in range(1000)])
        again = HLLService(FileStorage(tmp_path))
        assert abs(again.pfcount("daily_visitors") - 1000) / 1000 < 0.05

@pytest.mark.full
def test_concurrent_pfadd(service):
    """Per-key locking keeps every thread's additions."""
    def worker(offset: int):
        for start in range(offset, offset + 1000, 100):
            service.pfadd("shared", range(start, start + 100))

    threads = [threading.Thread(target=worker, args=(i * 1000,)) for i in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert abs(service.pfcount("shared") - 4000) / 4000 < 0.05
    assert service._locks == {}

@pytest.mark.quick
class TestStatusCodes:
    """Error to status code mapping."""

    def test_not_found(self):
        assert status_code(NotFoundError("k")) == 404

    def test_client_errors(self):
        assert status_code(InvalidKeyError("bad")) == 400
        assert status_code(ConfigError("bad")) == 400
        assert status_code(PrecisionMismatchError(10, 12)) == 400

    def test_server_errors(self):
        assert status_code(FormatError("bad")) == 500
        assert status_code(StorageError("disk")) == 500
        assert status_code(RuntimeError("other")) == 500

def test_split_keys():
    assert split_keys("a,b,,c") == ["a", "b", "c"]
    assert split_keys(["a", "b"]) == ["a", "b"]
    assert split_keys(iter(["x"])) == ["x"]
