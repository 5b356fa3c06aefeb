"""
Scenario description shared by every workload.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from objbench.common.errors import InvalidScenario


class WorkloadKind(str, Enum):
    UPLOAD = "upload"
    UPLOAD_MULTIPLE = "upload-multiple"
    DOWNLOAD = "download"
    COLUMNAR = "columnar"


class PrefixMode(str, Enum):
    SEQUENTIAL = "sequential"
    RANDOM = "random"


@dataclass(frozen=True)
class BenchmarkScenario:
    """Immutable parameters of one benchmark run.

    Built from CLI input and read by every component for the duration of the
    run. Only the fields relevant to ``workload`` are meaningful; ``validate``
    checks those before any I/O is issued.
    """

    workload: WorkloadKind
    uri: str
    object_size: Optional[int] = None
    num_objects: int = 1
    concurrency: int = 1
    page_sizes: Tuple[int, ...] = field(default_factory=tuple)
    prefix_mode: PrefixMode = PrefixMode.SEQUENTIAL
    block_size: Optional[int] = None

    def validate(self) -> "BenchmarkScenario":
        """Raise InvalidScenario if the parameters cannot describe a run."""
        if not self.uri:
            raise InvalidScenario("A storage URI is required")

        if self.workload in (WorkloadKind.UPLOAD, WorkloadKind.UPLOAD_MULTIPLE):
            if self.object_size is None or self.object_size <= 0:
                raise InvalidScenario(f"Object size must be positive, got {self.object_size}")
            if self.num_objects <= 0:
                raise InvalidScenario(f"Object count must be positive, got {self.num_objects}")
            if self.object_size % self.num_objects != 0:
                raise InvalidScenario(
                    f"Size {self.object_size} must be divisible by the number of objects "
                    f"({self.num_objects})"
                )
            if self.object_size // self.num_objects == 0:
                raise InvalidScenario("Each object must hold at least one byte")

        if self.workload in (WorkloadKind.DOWNLOAD, WorkloadKind.COLUMNAR):
            if self.concurrency <= 0:
                raise InvalidScenario(f"Concurrency must be positive, got {self.concurrency}")
            if self.block_size is not None and self.block_size <= 0:
                raise InvalidScenario(f"Block size must be positive, got {self.block_size}")

        if self.workload == WorkloadKind.COLUMNAR:
            if not self.page_sizes:
                raise InvalidScenario("At least one page size is required")
            for page_size in self.page_sizes:
                if page_size <= 0:
                    raise InvalidScenario(f"Page sizes must be positive, got {page_size}")

        return self

    @property
    def size_per_object(self) -> int:
        return (self.object_size or 0) // max(self.num_objects, 1)

    def to_dict(self) -> Dict[str, Any]:
        """Parameters as plain JSON-compatible values."""
        data = asdict(self)
        data["workload"] = self.workload.value
        data["prefix_mode"] = self.prefix_mode.value
        data["page_sizes"] = list(self.page_sizes)
        return data
