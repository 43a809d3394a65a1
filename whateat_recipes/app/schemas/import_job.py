from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ImportUrlRequest(BaseModel):
    url: str = Field(..., min_length=1)


class ImportPreviewResponse(BaseModel):
    extracted_from: str
    warnings: List[str] = Field(default_factory=list)
    recipe_data: Dict[str, Any]
    save_payload: Dict[str, Any]


class ImportJobRead(BaseModel):
    id: str
    type: str
    status: str
    input_url: Optional[str] = None
    input_image_path: Optional[str] = None
    result_recipe_id: Optional[str] = None
    error_message: Optional[str] = None
    retries: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ImportJobList(BaseModel):
    jobs: List[ImportJobRead]
