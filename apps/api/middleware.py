"""
Temp upload cleanup middleware.

Opens a temp upload session for every HTTP request and removes the
session's temp directory once the response has been sent.
"""

from starlette.types import ASGIApp, Receive, Scope, Send

from packages.filesystem import FileSystem


class TempUploadCleanupMiddleware:
    def __init__(self, app: ASGIApp, file_system: FileSystem):
        self.app = app
        self.file_system = file_system

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        token = self.file_system.begin_temp_upload_session()
        try:
            await self.app(scope, receive, send)
        finally:
            await self.file_system.clear_temp_upload_directory()
            self.file_system.end_temp_upload_session(token)
