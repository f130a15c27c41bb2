# api/images.py
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from api.deps import get_store
from api.errors import error_response
from config import settings as cfg
from gateways.persistence import PersistenceGateway, image_path, validate_image
from utils.exceptions import StoryForgeError, ValidationError
from utils.logger import get_logger

log = get_logger(__name__)

router = APIRouter(prefix="/upload-image", tags=["images"])


@router.post("")
def upload_image(
    file: Optional[UploadFile] = File(None),
    postId: Optional[int] = Form(None),
    folder: str = Form(cfg.DEFAULT_IMAGE_FOLDER),
    store: PersistenceGateway = Depends(get_store),
):
    if file is None:
        raise ValidationError("No file provided")
    data = file.file.read()
    validate_image(file.content_type, len(data))

    path = image_path(folder or cfg.DEFAULT_IMAGE_FOLDER, file.filename)
    file_name = path.rsplit("/", 1)[-1]
    image_url = store.upload_image(data, file.content_type, path)
    log.info("Uploaded %s (%d bytes)", path, len(data))

    if postId is not None:
        try:
            store.update_post(postId, {"metadata": {
                "image_url": image_url,
                "image_path": path,
                "image_filename": file_name,
                "image_size": len(data),
                "image_type": file.content_type,
            }})
        except StoryForgeError as e:
            log.error("Error updating post %s with image: %s", postId, e.message)

    return {
        "success": True,
        "imageUrl": image_url,
        "filePath": path,
        "fileName": file_name,
        "fileSize": len(data),
        "fileType": file.content_type,
        "postId": postId,
    }


@router.get("")
def list_images(
    folder: str = Query(cfg.DEFAULT_IMAGE_FOLDER),
    store: PersistenceGateway = Depends(get_store),
):
    try:
        files = store.list_images(folder)
    except StoryForgeError as e:
        return error_response(e, files=[])
    return {"success": True, "files": files, "count": len(files)}


@router.delete("")
def delete_image(
    path: Optional[str] = Query(None),
    store: PersistenceGateway = Depends(get_store),
):
    if not path:
        raise ValidationError("File path is required")
    store.delete_image(path)
    return {"success": True, "message": "File deleted successfully", "deletedPath": path}
