"""Per-call options: relative timeout, absolute deadline, call flags and host."""
import dataclasses
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

# grpc-js flag bit for "wait for ready"
WAIT_FOR_READY_FLAG = 0x20


@dataclass(frozen=True)
class CallOptions:
    timeout: Optional[float] = None  # seconds
    deadline: Optional[float] = None  # epoch seconds
    flags: Optional[int] = None
    host: Optional[str] = None

    @classmethod
    def from_mapping(cls, options: Union['CallOptions', Mapping[str, Any], None]) -> 'CallOptions':
        if options is None:
            return cls()
        if isinstance(options, CallOptions):
            return options
        names = {f.name for f in dataclasses.fields(cls)}
        return cls(**{key: value for key, value in options.items() if key in names})

    def merged(self, override: 'CallOptions') -> 'CallOptions':
        """Fields set on override replace the ones set here."""
        changes = {f.name: getattr(override, f.name) for f in dataclasses.fields(override)
                   if getattr(override, f.name) is not None}
        return dataclasses.replace(self, **changes)

    def with_deadline(self, now: float) -> 'CallOptions':
        """Deadline derived from the timeout at call time; unchanged when no numeric timeout is set."""
        if isinstance(self.timeout, bool) or not isinstance(self.timeout, (int, float)):
            return self
        return dataclasses.replace(self, deadline=now + self.timeout)

    def remaining(self, now: float) -> Optional[float]:
        if self.deadline is None:
            return None
        return max(self.deadline - now, 0.0)

    @property
    def wait_for_ready(self) -> Optional[bool]:
        if self.flags is None:
            return None
        return bool(self.flags & WAIT_FOR_READY_FLAG)


CallOptionsLike = Union[CallOptions, Mapping[str, Any]]
