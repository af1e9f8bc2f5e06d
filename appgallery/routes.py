"""
HTTP routes for the gallery backend API.

Reads always answer 200 with whatever the gateways can serve. Writes answer
200 even when only the memory cache holds the value; ``storage`` and
``warning`` tell the caller how durable the write was.
"""

from __future__ import annotations

import json
import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile
from starlette.datastructures import UploadFile as StarletteUploadFile

from appgallery.catalog import AppCatalog, FeaturedSets, RecordNotFound, utc_timestamp
from appgallery.contents import ContentCollection
from appgallery.dependencies import get_asset_store, get_registry
from appgallery.gallery import GalleryCatalog, ImageUpload
from appgallery.gateway import GatewayRegistry, WriteResult
from appgallery.ids import APP_ID_RANGES, CONTENT_ID_RANGES
from appgallery.resources import CONTENTS, MEMOS, MEMOS2, ResourceSpec
from appgallery.schemas import (
    AppItem,
    AppsByTypePayload,
    AppsByTypeResponse,
    AppsByTypeSaveResponse,
    AppTogglePayload,
    AppUpdate,
    ContentCreate,
    ContentsByTypeResponse,
    ContentsByTypeSaveResponse,
    ContentUpdate,
    DeleteAppPayload,
    DeleteAppResponse,
    DeleteFilePayload,
    FeaturedSetsPayload,
    GalleryItemPayload,
    GalleryItemResponse,
    GalleryType,
    LegacyTogglePayload,
    ListTogglePayload,
    MessageResponse,
    SetupFolderResult,
    SetupFoldersResponse,
    ToggleResponse,
    UploadResponse,
    WriteResponse,
)
from appgallery.uploads import AssetStore, DeleteOutcome

logger = logging.getLogger(__name__)

router = APIRouter()

SETUP_FOLDERS = ("gallery", "events", "featured")


def get_app_catalog(registry: GatewayRegistry = Depends(get_registry)) -> AppCatalog:
    return AppCatalog(registry)


def get_featured_sets(registry: GatewayRegistry = Depends(get_registry)) -> FeaturedSets:
    return FeaturedSets(registry)


def get_gallery_catalog(
    registry: GatewayRegistry = Depends(get_registry),
    assets: AssetStore = Depends(get_asset_store),
) -> GalleryCatalog:
    return GalleryCatalog(registry, assets)


def _write_response(result: WriteResult, data=None) -> WriteResponse:
    return WriteResponse(
        storage=result.tier.value,
        data=result.data if data is None else data,
        warning=result.warning,
    )


def _toggle_response(result: WriteResult) -> ToggleResponse:
    return ToggleResponse(
        storage=result.tier.value,
        featured=result.data["featured"],
        events=result.data["events"],
        warning=result.warning,
    )


# Raw resources -------------------------------------------------------------


@router.get("/data/apps")
def get_apps_data(catalog: AppCatalog = Depends(get_app_catalog)) -> list[dict]:
    return catalog.list_apps()


@router.post("/data/apps", response_model=WriteResponse)
def save_apps_data(
    apps: list[AppItem], catalog: AppCatalog = Depends(get_app_catalog)
):
    result = catalog.save_apps([app.model_dump(exclude_unset=True) for app in apps])
    return _write_response(result)


@router.put("/data/apps", response_model=WriteResponse)
def update_app_data(payload: AppUpdate, catalog: AppCatalog = Depends(get_app_catalog)):
    fields = payload.model_dump(exclude_unset=True)
    app_id = fields.pop("id")
    try:
        record, result = catalog.update_app(app_id, fields)
    except RecordNotFound:
        raise HTTPException(status_code=404, detail="App not found")
    return _write_response(result, data=record)


@router.delete("/data/apps", response_model=MessageResponse)
def delete_app_data(
    id: str = Query(..., min_length=1), catalog: AppCatalog = Depends(get_app_catalog)
):
    try:
        result = catalog.delete_app(id)
    except RecordNotFound:
        raise HTTPException(status_code=404, detail="App not found")
    return MessageResponse(
        message=f"App {id} deleted", storage=result.tier.value, warning=result.warning
    )


def _register_id_list_routes(list_name: str) -> None:
    path = f"/data/{list_name}"

    def read_ids(catalog: AppCatalog = Depends(get_app_catalog)) -> list[str]:
        return catalog.read_ids(list_name)

    def add_ids(ids: list[str], catalog: AppCatalog = Depends(get_app_catalog)):
        return _write_response(catalog.add_ids(list_name, ids))

    def remove_id(
        id: str = Query(..., min_length=1),
        catalog: AppCatalog = Depends(get_app_catalog),
    ):
        try:
            result = catalog.remove_id(list_name, id)
        except RecordNotFound:
            raise HTTPException(status_code=404, detail=f"{id} is not in {list_name}")
        return _write_response(result)

    router.add_api_route(path, read_ids, methods=["GET"], name=f"get_{list_name}_ids")
    router.add_api_route(
        path,
        add_ids,
        methods=["POST"],
        response_model=WriteResponse,
        name=f"add_{list_name}_ids",
    )
    router.add_api_route(
        path,
        remove_id,
        methods=["DELETE"],
        response_model=WriteResponse,
        name=f"remove_{list_name}_id",
    )


_register_id_list_routes("featured")
_register_id_list_routes("events")


@router.get("/data/featured-apps")
def get_featured_apps_data(sets: FeaturedSets = Depends(get_featured_sets)) -> dict:
    return sets.read()


@router.post("/data/featured-apps", response_model=WriteResponse)
def save_featured_apps_data(
    payload: FeaturedSetsPayload, sets: FeaturedSets = Depends(get_featured_sets)
):
    return _write_response(sets.save(payload.model_dump()))


@router.get("/data/contents")
def get_contents_data(registry: GatewayRegistry = Depends(get_registry)) -> list[dict]:
    return registry.get(CONTENTS).read()


@router.post("/data/contents", response_model=WriteResponse)
def save_contents_data(
    contents: list[dict], registry: GatewayRegistry = Depends(get_registry)
):
    return _write_response(registry.get(CONTENTS).write(contents))


# Apps ----------------------------------------------------------------------


@router.get("/apps")
def list_apps(
    filter: Literal["all", "latest", "featured", "events", "normal"] = Query("all"),
    catalog: AppCatalog = Depends(get_app_catalog),
) -> list[dict]:
    return catalog.list_with_flags(filter)


@router.get("/apps/featured")
def get_featured_sets_legacy(sets: FeaturedSets = Depends(get_featured_sets)) -> dict:
    return sets.read()


@router.post("/apps/featured", response_model=WriteResponse)
def save_featured_sets_legacy(
    payload: FeaturedSetsPayload, sets: FeaturedSets = Depends(get_featured_sets)
):
    return _write_response(sets.save(payload.model_dump()))


@router.put("/apps/featured", response_model=ToggleResponse)
def toggle_featured_sets_legacy(
    payload: LegacyTogglePayload, sets: FeaturedSets = Depends(get_featured_sets)
):
    """Toggle body: ``{appId, type: featured|events, action: add|remove}``."""
    if not payload.appId:
        raise HTTPException(status_code=400, detail="appId required")
    list_name = "featured" if payload.type == "featured" else "events"
    action = "remove" if payload.action == "remove" else "add"
    logger.info("Toggle %s %s %s", payload.appId, list_name, action)
    return _toggle_response(sets.toggle(list_name, payload.appId, action))


@router.patch("/apps/featured", response_model=ToggleResponse)
def patch_featured_sets_legacy(
    payload: ListTogglePayload, sets: FeaturedSets = Depends(get_featured_sets)
):
    return _toggle_response(sets.toggle(payload.list, payload.id, payload.op))


@router.put("/apps/toggle", response_model=WriteResponse)
def toggle_app_list(
    payload: AppTogglePayload, catalog: AppCatalog = Depends(get_app_catalog)
):
    return _write_response(catalog.toggle(payload.list, payload.appId, payload.action))


@router.get("/apps/type", response_model=AppsByTypeResponse)
def list_apps_by_type(
    type: Literal["gallery"] = Query(...),
    catalog: AppCatalog = Depends(get_app_catalog),
):
    apps = catalog.gallery_apps(type)
    return AppsByTypeResponse(
        type=type, count=len(apps), apps=apps, range=APP_ID_RANGES[type].as_dict()
    )


@router.post("/apps/type", response_model=AppsByTypeSaveResponse)
def save_apps_by_type(
    payload: AppsByTypePayload,
    type: Literal["gallery"] = Query(...),
    catalog: AppCatalog = Depends(get_app_catalog),
):
    apps = [app.model_dump(exclude_unset=True) for app in payload.apps]
    valid, result = catalog.replace_gallery_apps(apps, type)
    return AppsByTypeSaveResponse(
        type=type,
        count=len(valid),
        storage=result.tier.value,
        message=f"Saved {len(valid)} {type} apps",
        warning=result.warning,
    )


@router.delete("/delete-app", response_model=DeleteAppResponse)
def delete_app(
    payload: DeleteAppPayload,
    catalog: AppCatalog = Depends(get_app_catalog),
    assets: AssetStore = Depends(get_asset_store),
):
    deleted_icon = False
    if payload.iconUrl:
        deleted_icon = assets.delete(payload.iconUrl) is DeleteOutcome.DELETED

    deleted_screenshots = 0
    for url in payload.screenshotUrls or []:
        if assets.delete(url) is DeleteOutcome.DELETED:
            deleted_screenshots += 1

    return DeleteAppResponse(
        deletedAppId=payload.id,
        recordRemoved=catalog.forget_app(payload.id),
        deletedIcon=deleted_icon,
        deletedScreenshots=deleted_screenshots,
    )


# Contents ------------------------------------------------------------------


def _register_content_routes(
    path: str, resource: ResourceSpec, pinned_type: Optional[str] = None
) -> None:
    label = path.strip("/")

    def get_collection(
        registry: GatewayRegistry = Depends(get_registry),
    ) -> ContentCollection:
        return ContentCollection(registry.get(resource), pinned_type=pinned_type)

    def list_contents(
        type: Optional[str] = Query(None),
        published: Optional[str] = Query(None),
        collection: ContentCollection = Depends(get_collection),
    ) -> list[dict]:
        return collection.list(
            pinned_type or type, published_only=published == "true"
        )

    def create_content(
        payload: ContentCreate,
        collection: ContentCollection = Depends(get_collection),
    ):
        item, result = collection.create(payload.model_dump())
        return _write_response(result, data=item)

    def update_content(
        payload: ContentUpdate,
        collection: ContentCollection = Depends(get_collection),
    ):
        fields = payload.model_dump(exclude_unset=True)
        content_id = fields.pop("id", None)
        if not content_id:
            raise HTTPException(status_code=400, detail="Content id is required")
        try:
            item, result = collection.update(content_id, fields)
        except RecordNotFound:
            raise HTTPException(status_code=404, detail="Content not found")
        return _write_response(result, data=item)

    def delete_content(
        id: Optional[str] = Query(None),
        collection: ContentCollection = Depends(get_collection),
    ):
        if not id:
            raise HTTPException(status_code=400, detail="Content id is required")
        try:
            result = collection.delete(id)
        except RecordNotFound:
            raise HTTPException(status_code=404, detail="Content not found")
        return MessageResponse(
            message="Content deleted", storage=result.tier.value, warning=result.warning
        )

    router.add_api_route(path, list_contents, methods=["GET"], name=f"list_{label}")
    router.add_api_route(
        path,
        create_content,
        methods=["POST"],
        status_code=201,
        response_model=WriteResponse,
        name=f"create_{label}",
    )
    router.add_api_route(
        path,
        update_content,
        methods=["PUT"],
        response_model=WriteResponse,
        name=f"update_{label}",
    )
    router.add_api_route(
        path,
        delete_content,
        methods=["DELETE"],
        response_model=MessageResponse,
        name=f"delete_{label}",
    )


def get_contents_collection(
    registry: GatewayRegistry = Depends(get_registry),
) -> ContentCollection:
    return ContentCollection(registry.get(CONTENTS))


@router.get("/content/type", response_model=ContentsByTypeResponse)
def list_contents_by_type(
    type: Literal["appstory", "news"] = Query(...),
    collection: ContentCollection = Depends(get_contents_collection),
):
    contents = collection.by_type(type)
    return ContentsByTypeResponse(
        type=type,
        count=len(contents),
        contents=contents,
        range=CONTENT_ID_RANGES[type].as_dict(),
    )


@router.post("/content/type", response_model=ContentsByTypeSaveResponse)
def save_contents_by_type(
    contents: list[dict],
    type: Literal["appstory", "news"] = Query(...),
    collection: ContentCollection = Depends(get_contents_collection),
):
    valid, result = collection.replace_type(type, contents)
    return ContentsByTypeSaveResponse(
        type=type,
        count=len(valid),
        totalCount=len(result.data),
        range=CONTENT_ID_RANGES[type].as_dict(),
        storage=result.tier.value,
        warning=result.warning,
    )


_register_content_routes("/content", CONTENTS)
_register_content_routes("/memo", MEMOS, pinned_type="memo")
_register_content_routes("/memo2", MEMOS2, pinned_type="memo2")


# Gallery -------------------------------------------------------------------


@router.get("/gallery")
def list_gallery_items(
    type: GalleryType = Query(...),
    gallery: GalleryCatalog = Depends(get_gallery_catalog),
) -> list[dict]:
    return gallery.list(type)


@router.post("/gallery", response_model=GalleryItemResponse)
async def create_gallery_item(
    request: Request,
    type: GalleryType = Query(...),
    gallery: GalleryCatalog = Depends(get_gallery_catalog),
):
    if "application/json" in request.headers.get("content-type", ""):
        try:
            body = await request.json()
        except json.JSONDecodeError:
            raise HTTPException(status_code=400, detail="Invalid JSON body")
        item = body.get("item") if isinstance(body, dict) else None
        if not isinstance(item, dict) or not item.get("id"):
            raise HTTPException(status_code=400, detail="Item data and ID are required")
        record, result = gallery.upsert(type, item)
    else:
        form = await request.form()
        upload = form.get("file")
        image = None
        if isinstance(upload, StarletteUploadFile) and upload.filename:
            image = ImageUpload(
                data=await upload.read(),
                filename=upload.filename,
                content_type=upload.content_type,
            )
        fields = {
            key: form.get(key)
            for key in ("title", "content", "author", "tags", "store", "storeUrl", "appCategory")
        }
        fields["isPublished"] = form.get("isPublished") == "true"
        record, result = gallery.create(type, fields, image)
    return GalleryItemResponse(item=record, storage=result.tier.value, warning=result.warning)


@router.put("/gallery", response_model=GalleryItemResponse)
def update_gallery_item(
    payload: GalleryItemPayload,
    type: GalleryType = Query(...),
    gallery: GalleryCatalog = Depends(get_gallery_catalog),
):
    if not payload.item.get("id"):
        raise HTTPException(status_code=400, detail="Item data and ID are required")
    try:
        record, result = gallery.update(type, payload.item)
    except RecordNotFound:
        raise HTTPException(status_code=404, detail="Item not found")
    return GalleryItemResponse(item=record, storage=result.tier.value, warning=result.warning)


@router.delete("/gallery", response_model=MessageResponse)
def delete_gallery_item(
    type: GalleryType = Query(...),
    id: str = Query(..., min_length=1),
    gallery: GalleryCatalog = Depends(get_gallery_catalog),
):
    try:
        result, image_deleted = gallery.delete(type, id)
    except RecordNotFound:
        raise HTTPException(status_code=404, detail="Item not found")
    message = "Item deleted" + (" with its image" if image_deleted else "")
    return MessageResponse(message=message, storage=result.tier.value, warning=result.warning)


# Uploads -------------------------------------------------------------------


async def _store_upload(
    file: UploadFile, prefix: str, assets: AssetStore, *, force_blob: bool
) -> UploadResponse:
    if not file.filename:
        raise HTTPException(status_code=400, detail="No file provided")
    data = await file.read()
    try:
        uploaded = assets.save(
            data,
            file.filename,
            prefix=prefix,
            content_type=file.content_type,
            force_blob=force_blob,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        logger.error("Upload of %s failed: %s", file.filename, exc)
        raise HTTPException(status_code=500, detail="Failed to upload file")
    return UploadResponse(url=uploaded.url, fileName=uploaded.file_name, size=uploaded.size)


@router.post("/upload", response_model=UploadResponse)
async def upload_file(
    file: UploadFile = File(...),
    prefix: str = Form(""),
    assets: AssetStore = Depends(get_asset_store),
):
    return await _store_upload(file, prefix, assets, force_blob=False)


@router.post("/blob/upload", response_model=UploadResponse)
async def upload_file_to_blob(
    file: UploadFile = File(...),
    prefix: str = Form(""),
    assets: AssetStore = Depends(get_asset_store),
):
    return await _store_upload(file, prefix, assets, force_blob=True)


@router.post("/delete-file", response_model=MessageResponse)
def delete_file(payload: DeleteFilePayload, assets: AssetStore = Depends(get_asset_store)):
    outcome = assets.delete(payload.url)
    if outcome is DeleteOutcome.NOT_FOUND:
        raise HTTPException(status_code=404, detail="File not found")
    if outcome is DeleteOutcome.EXTERNAL:
        raise HTTPException(status_code=400, detail="Cannot delete external URL")
    if outcome is DeleteOutcome.FAILED:
        raise HTTPException(status_code=500, detail="Failed to delete file")
    return MessageResponse(message="File deleted")


@router.post("/blob/setup-folders", response_model=SetupFoldersResponse)
def setup_blob_folders(assets: AssetStore = Depends(get_asset_store)):
    results = []
    for folder in SETUP_FOLDERS:
        initial = {"items": [], "lastUpdated": utc_timestamp(), "version": 1}
        try:
            blob = assets.blob_store.put(
                f"{folder}/data.json",
                json.dumps(initial, indent=2).encode("utf-8"),
                content_type="application/json",
            )
        except Exception as exc:
            logger.error("Creating folder %s failed: %s", folder, exc)
            results.append(SetupFolderResult(folder=folder, success=False, error=str(exc)))
            continue
        results.append(SetupFolderResult(folder=folder, success=True, url=blob.url))

    created = sum(1 for r in results if r.success)
    return SetupFoldersResponse(
        success=created == len(results),
        message=f"{created}/{len(results)} folders created",
        results=results,
    )
