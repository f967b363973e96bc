from typing import Any

from pydantic import BaseModel, ConfigDict, Field

class EventRef(BaseModel):
    name: str
    id: str

class ObjectRef(BaseModel):
    id: str | None = None
    type: str | None = None

class MonimeEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    event: EventRef
    object: ObjectRef = Field(default_factory=ObjectRef)
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def metadata(self) -> dict[str, str]:
        raw = self.data.get("metadata")
        if not isinstance(raw, dict):
            return {}
        return {str(k): str(v) for k, v in raw.items() if v is not None}

    @property
    def failure_detail(self) -> dict[str, Any]:
        raw = self.data.get("failureDetail")
        return raw if isinstance(raw, dict) else {}

class WebhookAck(BaseModel):
    received: bool = True
    duplicate: bool | None = None
