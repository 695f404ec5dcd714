from pydantic import BaseModel, Field


class TodoItem(BaseModel):
    id: str
    text: str = Field(min_length=1)
    completed: bool = False
    position: int | None = None

    model_config = {"extra": "allow"}
