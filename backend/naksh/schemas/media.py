from typing import Optional

from naksh.schemas.common import CamelModel


class MediaUploadOut(CamelModel):
    url: str
    public_id: str
    width: Optional[int] = None
    height: Optional[int] = None
    duration_seconds: Optional[float] = None
    bytes: Optional[int] = None
    format: Optional[str] = None
    resource_type: str = "image"
