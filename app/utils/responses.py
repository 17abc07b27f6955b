"""Response helpers"""
from urllib.parse import quote
from fastapi.responses import Response
from app.services.exporter import ExportFile


def download_response(export: ExportFile) -> Response:
    """Serve an export as a file attachment"""
    ascii_name = export.filename.encode("ascii", "replace").decode("ascii").replace("?", "_").replace('"', "_")
    disposition = f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(export.filename)}"
    return Response(
        content=export.content,
        media_type=export.media_type,
        headers={"Content-Disposition": disposition}
    )
