import io
import json
import csv
from typing import List, Dict, Any, Sequence

from ..models.exceptions import OutputException
from ..models.http import SWResponse
from ..models.sync import PendingSyncItem, SyncResult

NAMESPACE_COLUMNS = ["name", "entries", "current"]
PENDING_COLUMNS = ["id", "type", "method", "endpoint", "attempts", "last_error", "timestamp"]
RESPONSE_COLUMNS = ["status", "status_text", "url", "body_size", "from_cache"]
SYNC_COLUMNS = ["ok", "replayed", "dropped", "remaining", "duration", "errors"]


def _cell(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value) if value else "-"
    return str(value)


class OutputFormatter:
    def __init__(self):
        self.supported_formats = ["tsv", "json", "csv"]

    def format_rows(self, rows: Sequence[Dict[str, Any]], columns: List[str], format_type: str = "tsv",
                    include_header: bool = True) -> str:
        ft = (format_type or "").lower()
        if ft == "json":
            data = [{c: r.get(c) for c in columns} for r in rows]
            return json.dumps(data, indent=2, ensure_ascii=False, default=str)
        if ft == "tsv":
            lines = ["\t".join(columns)] if include_header else []
            for r in rows:
                safe = [_cell(r.get(c)).replace("\t", "\\t").replace("\n", "\\n").replace("\r", "\\r")
                        for c in columns]
                lines.append("\t".join(safe))
            return "\n".join(lines)
        if ft == "csv":
            output = io.StringIO()
            writer = csv.writer(output, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
            if include_header:
                writer.writerow(columns)
            for r in rows:
                writer.writerow([_cell(r.get(c)) for c in columns])
            return output.getvalue().rstrip("\n")
        raise OutputException(f"Unsupported format: {format_type}", output_format=format_type)

    def namespace_rows(self, stats: Dict[str, int], current: Sequence[str]) -> List[Dict[str, Any]]:
        return [
            {"name": name, "entries": count, "current": name in current}
            for name, count in stats.items()
        ]

    def pending_rows(self, items: Sequence[PendingSyncItem]) -> List[Dict[str, Any]]:
        return [i.to_dict() for i in items]

    def format_namespaces(self, stats: Dict[str, int], current: Sequence[str], format_type: str = "tsv") -> str:
        return self.format_rows(self.namespace_rows(stats, current), NAMESPACE_COLUMNS, format_type)

    def format_pending(self, items: Sequence[PendingSyncItem], format_type: str = "tsv") -> str:
        return self.format_rows(self.pending_rows(items), PENDING_COLUMNS, format_type)

    def format_response(self, response: SWResponse, format_type: str = "tsv") -> str:
        return self.format_rows([response.to_dict()], RESPONSE_COLUMNS, format_type)

    def format_sync_result(self, result: SyncResult, format_type: str = "tsv") -> str:
        return self.format_rows([result.to_dict()], SYNC_COLUMNS, format_type)


output_formatter = OutputFormatter()
