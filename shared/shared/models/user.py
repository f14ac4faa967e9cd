from pydantic import BaseModel, ConfigDict


class CurrentUser(BaseModel):
    """Caller identity taken from the Bearer token; ``username`` is the image owner id."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    username: str
    email: str = ""
