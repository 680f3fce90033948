import os
from fastapi import APIRouter
from fastapi.responses import FileResponse
from errors import NotFoundError
from file_utils import media_path

router = APIRouter(prefix="/cdn", tags=["cdn"])


@router.get("/posts/{filename}")
def serve_post_media(filename: str):
    """Serve uploaded post media"""
    file_path = media_path(filename)
    if not os.path.isfile(file_path):
        raise NotFoundError("File not found.")
    return FileResponse(file_path)
