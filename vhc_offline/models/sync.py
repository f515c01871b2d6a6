from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Union
from enum import Enum
import json
import time

from config.constants import OFFLINE_MESSAGE, SYNC_START, SYNC_COMPLETE
from .exceptions import ValidationException


class PendingOpType(Enum):
    CREATE_JOB = "CREATE_JOB"
    UPDATE_JOB = "UPDATE_JOB"
    DELETE_JOB = "DELETE_JOB"
    CREATE_VHC = "CREATE_VHC"
    UPDATE_VHC = "UPDATE_VHC"
    CREATE_FIT_FINISH = "CREATE_FIT_FINISH"
    UPDATE_FIT_FINISH = "UPDATE_FIT_FINISH"


class SyncMessage(Enum):
    SYNC_START = SYNC_START
    SYNC_COMPLETE = SYNC_COMPLETE

    def to_message(self) -> Dict[str, str]:
        return {"type": self.value}

    @classmethod
    def from_message(cls, data: Any) -> Optional["SyncMessage"]:
        if not isinstance(data, dict):
            return None
        try:
            return cls(data.get("type"))
        except ValueError:
            return None


@dataclass
class PendingSyncItem:
    op_type: Union[PendingOpType, str]
    endpoint: str
    method: str = "POST"
    data: Dict[str, Any] = field(default_factory=dict)
    id: Optional[int] = None
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))
    attempts: int = 0
    last_error: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.op_type, str):
            try:
                self.op_type = PendingOpType(self.op_type)
            except ValueError:
                raise ValidationException(f"Unknown operation type: {self.op_type}", field="type", value=self.op_type)
        self.method = (self.method or "POST").upper()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.op_type.value,
            "endpoint": self.endpoint,
            "method": self.method,
            "data": self.data,
            "timestamp": self.timestamp,
            "attempts": self.attempts,
            "last_error": self.last_error,
        }

    @classmethod
    def from_row(cls, row) -> "PendingSyncItem":
        seq, op_type, endpoint, method, data, timestamp, attempts, last_error = row
        return cls(
            id=int(seq),
            op_type=op_type,
            endpoint=endpoint,
            method=method,
            data=json.loads(data) if data else {},
            timestamp=int(timestamp),
            attempts=int(attempts or 0),
            last_error=last_error,
        )


@dataclass
class SyncResult:
    ok: bool = True
    replayed: int = 0
    dropped: int = 0
    remaining: int = 0
    errors: List[str] = field(default_factory=list)
    cause: Optional[BaseException] = None
    duration: float = 0.0

    @classmethod
    def failure(cls, cause: BaseException, **kwargs) -> "SyncResult":
        res = cls(ok=False, cause=cause, **kwargs)
        res.add_error(str(cause))
        return res

    def add_error(self, error: str):
        if error and error not in self.errors:
            self.errors.append(error)

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "replayed": self.replayed,
            "dropped": self.dropped,
            "remaining": self.remaining,
            "errors": list(self.errors),
            "cause": repr(self.cause) if self.cause else None,
            "duration": round(self.duration, 3),
        }


@dataclass
class OfflineResult:
    offline: bool = True
    message: str = OFFLINE_MESSAGE

    def to_dict(self) -> Dict[str, Any]:
        return {"offline": self.offline, "message": self.message}
