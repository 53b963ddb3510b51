from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class CartFieldPatch(BaseModel):
    cart_id: str = Field(validation_alias=AliasChoices("cartId", "cart_id"))
    field: str
    value: Any = None


class RemarkCreate(BaseModel):
    cart_id: str
    type: str
    message: str
    agent: str = "Current User"


class CustomerResponseCreate(BaseModel):
    cart_id: str
    medium: Optional[str] = "email"
    response: str


class ResponseEdit(BaseModel):
    cart_id: str
    response: str


class StatusChange(BaseModel):
    cart_id: str
    status: str
    agent: str = "System"


class CartUpdate(BaseModel):
    cart_id: Optional[str] = None
    remark_id: Optional[int] = None
    field: Optional[str] = None
    value: Any = None


class TemplateIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Optional[str] = None
    name: Optional[str] = None
    text: Optional[str] = None
    category: Optional[str] = None
    is_starred: bool = Field(default=False, validation_alias=AliasChoices("isStarred", "is_starred"))
    usage_count: int = Field(default=0, validation_alias=AliasChoices("usageCount", "usage_count"))


class TemplateUpdate(BaseModel):
    id: Optional[int] = None
    type: Optional[str] = None
    name: Optional[str] = None
    text: Optional[str] = None
    category: Optional[str] = None
    is_starred: Optional[bool] = Field(default=None, validation_alias=AliasChoices("isStarred", "is_starred"))
    usage_count: Optional[int] = Field(default=None, validation_alias=AliasChoices("usageCount", "usage_count"))


class TemplateDelete(BaseModel):
    id: Optional[int] = None


class TemplateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: str
    name: str
    text: str
    category: str
    is_starred: bool = False
    usage_count: int = 0


class TemplateFill(BaseModel):
    cart_id: str
