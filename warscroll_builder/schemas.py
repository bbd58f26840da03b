from pydantic import BaseModel, Field


class ImportLibraryForm(BaseModel):
    path: str = Field(..., min_length=1, max_length=200)


class ImportRegimentsForm(BaseModel):
    only_regiment: str | None = Field(None, max_length=200)


class CollectionForm(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    faction: str | None = Field(None, max_length=120)
    warscroll_ids: list[str] = Field(default_factory=list)
    battle_trait_ids: list[str] = Field(default_factory=list)
