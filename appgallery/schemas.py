"""
Pydantic schemas for the gallery FastAPI backend.

Field names are camelCase because they are the JSON keys the frontend and
the persisted documents already use.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

StorageName = Literal["blob", "memory", "local"]
ListName = Literal["featured", "events"]
ContentType = Literal["appstory", "news", "memo", "memo2"]
GalleryType = Literal["gallery", "featured", "events"]


class AppItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1)
    name: Optional[str] = None
    developer: Optional[str] = None
    description: Optional[str] = None
    iconUrl: Optional[str] = None
    screenshotUrls: Optional[list[str]] = None
    store: Optional[Literal["google-play", "app-store"]] = None
    status: Optional[Literal["published", "in-review", "development"]] = None
    rating: Optional[float] = None
    downloads: Optional[str] = None
    views: Optional[int] = None
    likes: Optional[int] = None
    uploadDate: Optional[str] = None
    tags: Optional[list[str]] = None
    storeUrl: Optional[str] = None
    version: Optional[str] = None
    size: Optional[str] = None
    category: Optional[str] = None
    type: Optional[Literal["gallery"]] = None
    adminStoreUrl: Optional[str] = None


class AppUpdate(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1)


class FeaturedSetsPayload(BaseModel):
    featured: list[str]
    events: list[str]


class LegacyTogglePayload(BaseModel):
    appId: Optional[str] = None
    type: Optional[str] = None
    action: Optional[str] = None


class ListTogglePayload(BaseModel):
    list: ListName
    op: Literal["add", "remove"]
    id: str = Field(..., min_length=1)


class AppTogglePayload(BaseModel):
    appId: str = Field(..., min_length=1)
    list: ListName
    action: Literal["add", "remove"]


class WriteResponse(BaseModel):
    success: bool = True
    storage: StorageName
    data: Any
    warning: Optional[str] = None


class ToggleResponse(BaseModel):
    success: bool = True
    storage: StorageName
    featured: list[str]
    events: list[str]
    warning: Optional[str] = None


class IdRangeModel(BaseModel):
    min: int
    max: int


class AppsByTypeResponse(BaseModel):
    type: str
    count: int
    apps: list[dict]
    range: IdRangeModel


class AppsByTypePayload(BaseModel):
    apps: list[AppItem]


class AppsByTypeSaveResponse(BaseModel):
    success: bool = True
    type: str
    count: int
    storage: StorageName
    message: str
    warning: Optional[str] = None


class DeleteAppPayload(BaseModel):
    id: str = Field(..., min_length=1)
    iconUrl: Optional[str] = None
    screenshotUrls: Optional[list[str]] = None


class DeleteAppResponse(BaseModel):
    success: bool = True
    deletedAppId: str
    recordRemoved: bool
    deletedIcon: bool
    deletedScreenshots: int


class ContentCreate(BaseModel):
    title: str = ""
    content: str = ""
    author: str = ""
    type: Optional[ContentType] = None
    tags: Optional[str | list[str]] = None
    isPublished: bool = False
    imageUrl: Optional[str] = None


class ContentUpdate(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    title: Optional[str] = None
    content: Optional[str] = None
    author: Optional[str] = None
    type: Optional[ContentType] = None
    tags: Optional[str | list[str]] = None
    isPublished: Optional[bool] = None
    imageUrl: Optional[str] = None


class ContentsByTypeResponse(BaseModel):
    type: str
    count: int
    contents: list[dict]
    range: IdRangeModel


class ContentsByTypeSaveResponse(BaseModel):
    success: bool = True
    type: str
    count: int
    totalCount: int
    range: IdRangeModel
    storage: StorageName
    warning: Optional[str] = None


class MessageResponse(BaseModel):
    success: bool = True
    message: str
    storage: Optional[StorageName] = None
    warning: Optional[str] = None


class GalleryItemPayload(BaseModel):
    item: dict


class GalleryItemResponse(BaseModel):
    success: bool = True
    item: dict
    storage: StorageName
    warning: Optional[str] = None


class UploadResponse(BaseModel):
    success: bool = True
    url: str
    fileName: str
    size: int


class DeleteFilePayload(BaseModel):
    url: str = Field(..., min_length=1)


class SetupFolderResult(BaseModel):
    folder: str
    success: bool
    url: Optional[str] = None
    error: Optional[str] = None


class SetupFoldersResponse(BaseModel):
    success: bool
    message: str
    results: list[SetupFolderResult]
