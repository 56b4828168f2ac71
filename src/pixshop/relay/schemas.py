"""
Request and response models for the relay API.

Field names follow the camelCase JSON the client sends.
"""

from pydantic import BaseModel, ConfigDict, Field

from pixshop.core.canvas import Point
from pixshop.core.operations import EditRequest


class HotspotModel(BaseModel):
    x: float
    y: float


class TargetSizeModel(BaseModel):
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)


class GenerateRequest(BaseModel):
    """Body of POST /api/generate. Which fields matter depends on type."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str = ""
    original_image: str = Field("", alias="originalImage")
    user_prompt: str = Field("", alias="userPrompt")
    hotspot: HotspotModel | None = None
    filter_prompt: str = Field("", alias="filterPrompt")
    adjustment_prompt: str = Field("", alias="adjustmentPrompt")
    object_image: str = Field("", alias="objectImage")
    direction: str = ""
    target_size: TargetSizeModel | None = Field(None, alias="targetSize")

    def to_edit_request(self) -> EditRequest:
        return EditRequest(
            type=self.type,
            original_image=self.original_image,
            user_prompt=self.user_prompt,
            hotspot=Point(self.hotspot.x, self.hotspot.y) if self.hotspot else None,
            filter_prompt=self.filter_prompt,
            adjustment_prompt=self.adjustment_prompt,
            object_image=self.object_image,
            direction=self.direction,
            target_size=(
                (self.target_size.width, self.target_size.height) if self.target_size else None
            ),
        )


class GenerateResponse(BaseModel):
    success: bool = True
    data: str = Field(..., description="Result image as a data URL")


class HealthResponse(BaseModel):
    status: str = "ok"
    model: str
