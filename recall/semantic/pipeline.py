from __future__ import annotations

import json
import time
from typing import List, Optional, TYPE_CHECKING

from recall.utils import get_logger, log_information_processing, log_question_generation
from recall.sheets.models import BlockMetadata, BlockWithContext, InformationBlock, QuestionAnswer, utc_now
from .extractor import ExtractionError, extract_json_array, extract_question_answer

if TYPE_CHECKING:
    from recall.providers.gateway import ProviderGateway

LOG = get_logger()

FALLBACK_QUESTION_PREFIX = 'Can you explain the following concept in your own words: '
FALLBACK_EXCERPT_LENGTH = 100


class StudyContentPipeline:
    """Turns raw notes into information blocks and blocks into recall questions.

    Both operations are total with respect to model output: when the reply
    cannot be recovered as JSON a deterministic fallback is returned. Errors
    raised by the gateway itself (configuration, HTTP) propagate.
    """

    def __init__(self, gateway: 'ProviderGateway'):
        self.gateway = gateway

    def _build_processing_prompts(self, information: str, input_prompt: str, context_prompt: str):
        system_prompt = f'{context_prompt}\n\nProcessing Instructions: {input_prompt}'
        user_prompt = (
            'Process the following information according to the instructions. '
            'Break it into discrete, well-organized blocks of information. '
            'Return ONLY a valid JSON array where each element is a string containing one information block. '
            'No additional text or explanation.'
            f'\n\nInformation to process:\n{information}'
        )
        return system_prompt, user_prompt

    def _build_question_prompts(self, block_with_context: BlockWithContext, output_prompt: str, context_prompt: str):
        system_prompt = f'{context_prompt}\n\nQuestion Generation Instructions: {output_prompt}'
        context_info = ''
        if block_with_context.context_before:
            context_info += '\nPrevious context:\n' + '\n'.join(b.content for b in block_with_context.context_before)
        if block_with_context.context_after:
            context_info += '\nFollowing context:\n' + '\n'.join(b.content for b in block_with_context.context_after)
        user_prompt = (
            'Generate an active recall question and comprehensive answer based on the following information.'
            f'{context_info}'
            f'\n\nMain information:\n{block_with_context.main_block.content}'
            '\n\nReturn ONLY valid JSON with the structure: {"question": "...", "answer": "..."}'
        )
        return system_prompt, user_prompt

    async def process_information(self, information: str, input_prompt: str, context_prompt: str, request_id: Optional[str] = None) -> List[InformationBlock]:
        system_prompt, user_prompt = self._build_processing_prompts(information, input_prompt, context_prompt)
        start = time.time()
        response = await self.gateway.dispatch(system_prompt, user_prompt, extract_text=True)
        created_at = utc_now()

        try:
            items = extract_json_array(response)
        except ExtractionError:
            LOG.warning('information_extraction_failed', extra={'request_id': request_id, 'response_length': len(response or '')})
            if not (response or '').strip():
                log_information_processing(request_id, 0, len(information), int((time.time() - start) * 1000), fallback_used=True)
                return []
            blocks = [InformationBlock(content=response, metadata=BlockMetadata(created_at=created_at, index=0))]
            log_information_processing(request_id, len(blocks), len(information), int((time.time() - start) * 1000), fallback_used=True)
            return blocks

        blocks = []
        for item in items:
            if isinstance(item, str):
                content = item.strip()
            else:
                content = json.dumps(item, separators=(',', ':'), ensure_ascii=False)
            # skip blank entries
            if not content:
                continue
            blocks.append(InformationBlock(content=content, metadata=BlockMetadata(created_at=created_at, index=len(blocks))))
        log_information_processing(request_id, len(blocks), len(information), int((time.time() - start) * 1000))
        return blocks

    async def generate_question_answer(self, block_with_context: BlockWithContext, output_prompt: str, context_prompt: str, request_id: Optional[str] = None) -> QuestionAnswer:
        system_prompt, user_prompt = self._build_question_prompts(block_with_context, output_prompt, context_prompt)
        main = block_with_context.main_block
        context_count = len(block_with_context.context_before) + len(block_with_context.context_after)
        start = time.time()
        response = await self.gateway.dispatch(system_prompt, user_prompt, extract_text=True)

        try:
            qa = QuestionAnswer(**extract_question_answer(response))
            fallback_used = False
        except ExtractionError:
            LOG.warning('question_extraction_failed', extra={'request_id': request_id, 'block_id': main.id})
            qa = fallback_question_answer(main)
            fallback_used = True
        log_question_generation(request_id, main.id, context_count, int((time.time() - start) * 1000), fallback_used=fallback_used)
        return qa


def fallback_question_answer(block: InformationBlock) -> QuestionAnswer:
    excerpt = block.content[:FALLBACK_EXCERPT_LENGTH]
    return QuestionAnswer(question=f'{FALLBACK_QUESTION_PREFIX}{excerpt}...?', answer=block.content)
