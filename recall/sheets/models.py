"""Data models for recall sheets and the study content they hold.

Attribute names are snake_case; the camelCase names used in `.recall` files
and on the wire are declared as aliases and accepted on input.
"""
from __future__ import annotations

import time
import uuid
import random
from datetime import datetime, timezone
from typing import List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer

BlockId = Union[int, float, str]

DEFAULT_TITLE = 'Untitled Recall Sheet'
DEFAULT_CONTEXT_SIZE = 2


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    # millisecond precision with a Z suffix, same shape as the files written by the web app
    return to_iso_millis(utc_now())


def new_block_id() -> str:
    return f'{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}'


def to_iso_millis(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


class BlockMetadata(BaseModel):
    """Block metadata as stored in `.recall` files.

    Blocks added by hand in the web app carry `{}`; unset fields stay unset
    and unknown keys are kept so a load/save cycle leaves the file as it was.
    """

    model_config = ConfigDict(populate_by_name=True, extra='allow')

    created_at: Optional[datetime] = Field(None, alias='createdAt')
    index: Optional[int] = None

    @field_serializer('created_at')
    def _serialize_created_at(self, value: Optional[datetime]):
        return to_iso_millis(value) if value is not None else None


class InformationBlock(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: BlockId = Field(default_factory=new_block_id)
    content: str = Field(..., min_length=1)
    metadata: Optional[BlockMetadata] = None


class BlockWithContext(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    main_block: InformationBlock = Field(..., alias='mainBlock')
    context_before: List[InformationBlock] = Field(default_factory=list, alias='contextBefore', max_length=DEFAULT_CONTEXT_SIZE)
    context_after: List[InformationBlock] = Field(default_factory=list, alias='contextAfter', max_length=DEFAULT_CONTEXT_SIZE)


class QuestionAnswer(BaseModel):
    question: str
    answer: str


class RecallSheet(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = ''
    date_last_edited: str = Field(default_factory=utc_now_iso, alias='dateLastEdited')
    context_prompt: str = Field('', alias='contextPrompt')
    input_prompt: str = Field('', alias='inputPrompt')
    output_prompt: str = Field('', alias='outputPrompt')
    information: List[InformationBlock] = Field(default_factory=list)

    def touch(self):
        self.date_last_edited = utc_now_iso()

    def add_information_block(self, content: str, metadata: Optional[BlockMetadata] = None) -> InformationBlock:
        block = InformationBlock(content=content, metadata=metadata)
        self.information.append(block)
        self.touch()
        return block

    def remove_information_block(self, block_id: BlockId) -> bool:
        """Drop the block with `block_id`; returns whether anything was removed."""
        before = len(self.information)
        self.information = [b for b in self.information if b.id != block_id]
        self.touch()
        return len(self.information) != before

    def duplicate_structure(self) -> 'RecallSheet':
        """Copy title and prompts into a new sheet with no information."""
        return RecallSheet(
            title=f'{self.title} (Copy)',
            context_prompt=self.context_prompt,
            input_prompt=self.input_prompt,
            output_prompt=self.output_prompt,
        )

    def random_information_block(self, rng: Optional[random.Random] = None) -> Optional[Tuple[InformationBlock, int, int]]:
        if not self.information:
            return None
        rng = rng or random
        index = rng.randrange(len(self.information))
        return self.information[index], index, len(self.information)

    def block_with_context(self, index: int, context_size: int = DEFAULT_CONTEXT_SIZE) -> Optional[BlockWithContext]:
        """Build the context window around `index`.

        Up to `context_size` (at most two) neighbours are taken from each
        side, preserving sheet order. Returns None when `index` is outside
        the sheet.
        """
        info = self.information
        if index < 0 or index >= len(info):
            return None
        context_size = max(0, min(context_size, DEFAULT_CONTEXT_SIZE))
        start = max(0, index - context_size)
        return BlockWithContext(
            main_block=info[index],
            context_before=info[start:index],
            context_after=info[index + 1:index + 1 + context_size],
        )
