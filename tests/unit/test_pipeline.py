import json
import pytest

from recall.providers import NotConfiguredError, ProviderError
from recall.semantic import StudyContentPipeline, FALLBACK_QUESTION_PREFIX, fallback_question_answer
from recall.sheets import InformationBlock, BlockWithContext


@pytest.mark.unit
@pytest.mark.asyncio
async def test_process_information_builds_blocks(fake_gateway):
    gw = fake_gateway(reply='```json\n["  First idea. ", "Second idea."]\n```')
    pipeline = StudyContentPipeline(gw)
    blocks = await pipeline.process_information('Some notes', 'Split by idea', 'Biology')

    assert [b.content for b in blocks] == ['First idea.', 'Second idea.']
    assert [b.metadata.index for b in blocks] == [0, 1]
    assert blocks[0].metadata.created_at == blocks[1].metadata.created_at
    assert blocks[0].id != blocks[1].id
    assert gw.calls[0]['extract_text'] is True


@pytest.mark.unit
@pytest.mark.asyncio
async def test_process_information_prompts(fake_gateway):
    gw = fake_gateway(reply='[]')
    await StudyContentPipeline(gw).process_information('Raw text', 'Split by idea', 'Biology')
    call = gw.calls[0]
    assert call['system'] == 'Biology\n\nProcessing Instructions: Split by idea'
    assert call['user'].startswith('Process the following information according to the instructions.')
    assert call['user'].endswith('Information to process:\nRaw text')


@pytest.mark.unit
@pytest.mark.asyncio
async def test_process_information_stringifies_non_string_items(fake_gateway):
    gw = fake_gateway(reply='["text", {"term": "ATP"}, 3]')
    blocks = await StudyContentPipeline(gw).process_information('x', 'y', 'z')
    assert [b.content for b in blocks] == ['text', json.dumps({'term': 'ATP'}, separators=(',', ':')), '3']


@pytest.mark.unit
@pytest.mark.asyncio
async def test_process_information_fallback_keeps_raw_reply(fake_gateway):
    reply = 'I could not format this, sorry.'
    gw = fake_gateway(reply=reply)
    blocks = await StudyContentPipeline(gw).process_information('Some notes', 'y', 'z')
    assert len(blocks) == 1
    assert blocks[0].content == reply
    assert blocks[0].metadata.index == 0


@pytest.mark.unit
@pytest.mark.asyncio
async def test_process_information_propagates_gateway_errors(fake_gateway):
    gw = fake_gateway(error=NotConfiguredError('Provider gateway not configured'))
    with pytest.raises(NotConfiguredError):
        await StudyContentPipeline(gw).process_information('x', 'y', 'z')


@pytest.mark.unit
@pytest.mark.asyncio
async def test_generate_question_answer(fake_gateway, sample_blocks):
    gw = fake_gateway(reply='Here you go: {"question": "Why?", "answer": "Because."}')
    bwc = BlockWithContext(main_block=sample_blocks[2], context_before=sample_blocks[:2], context_after=sample_blocks[3:])
    qa = await StudyContentPipeline(gw).generate_question_answer(bwc, 'Ask why', 'Biology')

    assert qa.question == 'Why?'
    assert qa.answer == 'Because.'
    call = gw.calls[0]
    assert call['system'] == 'Biology\n\nQuestion Generation Instructions: Ask why'
    assert '\nPrevious context:\nBlock 0 content\nBlock 1 content' in call['user']
    assert '\nFollowing context:\nBlock 3 content\nBlock 4 content' in call['user']
    assert 'Main information:\nBlock 2 content' in call['user']


@pytest.mark.unit
@pytest.mark.asyncio
async def test_generate_question_without_context_omits_sections(fake_gateway, sample_blocks):
    gw = fake_gateway(reply='{"question": "Q", "answer": "A"}')
    await StudyContentPipeline(gw).generate_question_answer(BlockWithContext(main_block=sample_blocks[0]), 'o', 'c')
    user = gw.calls[0]['user']
    assert 'Previous context' not in user
    assert 'Following context' not in user


@pytest.mark.unit
@pytest.mark.asyncio
async def test_generate_question_fallback(fake_gateway):
    content = 'x' * 150
    gw = fake_gateway(reply='{"question": "only a question"}')
    qa = await StudyContentPipeline(gw).generate_question_answer(BlockWithContext(main_block=InformationBlock(content=content)), 'o', 'c')
    assert qa.question == f'{FALLBACK_QUESTION_PREFIX}{"x" * 100}...?'
    assert qa.answer == content


@pytest.mark.unit
@pytest.mark.asyncio
async def test_generate_question_propagates_provider_error(fake_gateway, sample_blocks):
    gw = fake_gateway(error=ProviderError('OpenAI API error: boom', provider='openai', status_code=500))
    with pytest.raises(ProviderError):
        await StudyContentPipeline(gw).generate_question_answer(BlockWithContext(main_block=sample_blocks[0]), 'o', 'c')


@pytest.mark.unit
def test_fallback_short_content():
    qa = fallback_question_answer(InformationBlock(content='Short'))
    assert qa.question == f'{FALLBACK_QUESTION_PREFIX}Short...?'
    assert qa.answer == 'Short'


@pytest.mark.unit
@pytest.mark.asyncio
async def test_process_information_skips_blank_items(fake_gateway):
    gw = fake_gateway(reply='["ok", "", "   ", {"term": "ATP"}]')
    blocks = await StudyContentPipeline(gw).process_information('x', 'y', 'z')
    assert [b.content for b in blocks] == ['ok', '{"term":"ATP"}']
    assert [b.metadata.index for b in blocks] == [0, 1]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_process_information_blank_reply_gives_no_blocks(fake_gateway):
    blocks = await StudyContentPipeline(fake_gateway(reply='   ')).process_information('x', 'y', 'z')
    assert blocks == []
