from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class KeyValueStore(BaseModel):
    model_config = ConfigDict(
        validate_by_name=True,
        validate_by_alias=True,
        extra="allow",
    )
    id: str = Field(alias="id")
    name: Optional[str] = Field(default=None, alias="name")
    title: Optional[str] = Field(default=None, alias="title")
    user_id: Optional[str] = Field(default=None, alias="userId")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    modified_at: Optional[datetime] = Field(default=None, alias="modifiedAt")
    accessed_at: Optional[datetime] = Field(default=None, alias="accessedAt")


class KeyValueStoreListPage(BaseModel):
    """One page of the key-value store collection."""

    model_config = ConfigDict(
        validate_by_name=True,
        validate_by_alias=True,
        extra="allow",
    )
    total: int = Field(default=0, alias="total")
    offset: int = Field(default=0, alias="offset")
    limit: Optional[int] = Field(default=None, alias="limit")
    count: int = Field(default=0, alias="count")
    desc: bool = Field(default=False, alias="desc")
    items: List[KeyValueStore] = Field(default_factory=list, alias="items")


class KeyValueStoreKey(BaseModel):
    model_config = ConfigDict(
        validate_by_name=True,
        validate_by_alias=True,
        extra="allow",
    )
    key: str = Field(alias="key")
    size: Optional[int] = Field(default=None, alias="size")


class KeyValueStoreKeys(BaseModel):
    """A page of keys returned by ``list_keys``."""

    model_config = ConfigDict(
        validate_by_name=True,
        validate_by_alias=True,
        extra="allow",
    )
    items: List[KeyValueStoreKey] = Field(default_factory=list, alias="items")
    count: int = Field(default=0, alias="count")
    limit: Optional[int] = Field(default=None, alias="limit")
    exclusive_start_key: Optional[str] = Field(
        default=None, alias="exclusiveStartKey"
    )
    is_truncated: bool = Field(default=False, alias="isTruncated")
    next_exclusive_start_key: Optional[str] = Field(
        default=None, alias="nextExclusiveStartKey"
    )


class KeyValueStoreRecord(BaseModel):
    key: str
    value: Any = None
    content_type: Optional[str] = None
