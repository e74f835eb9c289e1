"""Backend function registry exporter."""

from typing import Sequence

from ..._utils import iso_now, logger
from ..models import BackupStats, BackupType, ExportPayload

FUNCTIONS_PATH = "functions/metadata"

BACKEND_FUNCTIONS = (
    "send-notification-email",
    "login-user",
    "create-admin-user",
    "test-resend-api",
    "send-push-notification",
    "check-account-status",
    "reset-password",
    "analyze-asset-image",
)


class FunctionsExporter:
    def __init__(self, functions: Sequence[str] = BACKEND_FUNCTIONS):
        self.functions = list(functions)

    async def export(self) -> ExportPayload:
        document = {
            "functions": list(self.functions),
            "count": len(self.functions),
            "description": "Backend function metadata and configuration",
            "exported_at": iso_now(),
        }
        logger.info(f"Functions export complete: {len(self.functions)} functions")
        return ExportPayload(
            backup_type=BackupType.FUNCTIONS,
            entries={FUNCTIONS_PATH: document},
            metadata_path=FUNCTIONS_PATH,
            stats=BackupStats(),
        )
