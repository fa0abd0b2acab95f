from datetime import datetime

from pydantic import Field, computed_field

from docarchive.models.comment import ReactionType
from docarchive.schemas.common import APIModel
from docarchive.schemas.user import UserBrief


class ReactionOut(APIModel):
    user_id: int
    type: str


class CommentOut(APIModel):
    id: int
    document_id: int
    author: UserBrief
    text: str
    parent_id: int | None = None
    is_edited: bool
    edited_at: datetime | None = None
    reactions: list[ReactionOut] = []
    replies: list["CommentOut"] = []
    created_at: datetime

    @computed_field(alias="reactionCounts")
    @property
    def reaction_counts(self) -> dict[str, int]:
        counts = {reaction.value: 0 for reaction in ReactionType}
        for reaction in self.reactions:
            counts[reaction.type] = counts.get(reaction.type, 0) + 1
        return counts


class CommentCreate(APIModel):
    text: str = Field(..., min_length=1, max_length=1000)
    parent_id: int | None = None


class CommentUpdate(APIModel):
    text: str = Field(..., min_length=1, max_length=1000)


class ReactionRequest(APIModel):
    type: ReactionType = ReactionType.LIKE
