from pydantic import BaseModel


class SideQuest(BaseModel):
    id: str
    name: str
    xp: int
    category: str


class SideQuestView(SideQuest):
    completed: bool = False
