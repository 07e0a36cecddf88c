import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from recofeed.enrichers.cuisine_enricher import (
    cuisine_from_name,
    enrich_candidates,
    parse_cuisine_response,
)
from recofeed.models import RecommendationCandidate


def _candidate(external_id: str, name: str, cuisine: str = "Restaurant") -> RecommendationCandidate:
    return RecommendationCandidate(
        external_id=external_id, name=name, cuisine=cuisine, address="", city="Rome"
    )


def _response(content: str) -> MagicMock:
    resp = MagicMock()
    resp.choices = [MagicMock()]
    resp.choices[0].message.content = content
    return resp


def _mock_openai(side_effect):
    instance = MagicMock()
    instance.chat_completions_create = AsyncMock(side_effect=side_effect)
    return instance


def test_parse_cuisine_response_handles_code_fences():
    assert parse_cuisine_response('```json\n{"cuisine": "Thai"}\n```') == "Thai"
    assert parse_cuisine_response('Sure! {"cuisine": "Greek"} hope it helps') == "Greek"
    assert parse_cuisine_response("no json here") is None


def test_cuisine_from_name_patterns():
    assert cuisine_from_name("Sushi Zen") == "Japanese"
    assert cuisine_from_name("Trattoria da Mario") == "Italian"
    assert cuisine_from_name("Chez Nous") == "International"


@pytest.mark.asyncio
async def test_only_generic_candidates_are_classified():
    batch = [_candidate("1", "Da Enzo"), _candidate("2", "Sushi Zen", cuisine="Japanese")]
    with patch("recofeed.enrichers.cuisine_enricher.OpenAIClient") as mock_openai_cls:
        instance = _mock_openai([_response('{"cuisine": "Roman"}')])
        mock_openai_cls.return_value = instance
        result = await enrich_candidates(batch)

    assert result is batch
    assert [c.cuisine for c in batch] == ["Roman", "Japanese"]
    assert instance.chat_completions_create.call_count == 1


@pytest.mark.asyncio
async def test_failure_for_one_candidate_does_not_block_others():
    batch = [_candidate("1", "Broken"), _candidate("2", "Working")]

    async def classify(**kwargs):
        if "Broken" in kwargs["messages"][1]["content"]:
            raise RuntimeError("API timeout")
        return _response('{"cuisine": "Mexican"}')

    with patch("recofeed.enrichers.cuisine_enricher.OpenAIClient") as mock_openai_cls:
        mock_openai_cls.return_value = _mock_openai(classify)
        await enrich_candidates(batch)

    assert batch[0].cuisine == "Restaurant"
    assert batch[1].cuisine == "Mexican"


@pytest.mark.asyncio
async def test_generic_answer_leaves_label_unchanged():
    batch = [_candidate("1", "Da Enzo")]
    with patch("recofeed.enrichers.cuisine_enricher.OpenAIClient") as mock_openai_cls:
        mock_openai_cls.return_value = _mock_openai([_response('{"cuisine": "Food"}')])
        await enrich_candidates(batch)

    assert batch[0].cuisine == "Restaurant"


@pytest.mark.asyncio
async def test_unparseable_answer_falls_back_to_name():
    batch = [_candidate("1", "Taqueria El Sol")]
    with patch("recofeed.enrichers.cuisine_enricher.OpenAIClient") as mock_openai_cls:
        mock_openai_cls.return_value = _mock_openai([_response("I think Mexican?")])
        await enrich_candidates(batch)

    assert batch[0].cuisine == "Mexican"


@pytest.mark.asyncio
async def test_enriched_label_never_regresses():
    batch = [_candidate("1", "Da Enzo")]
    with patch("recofeed.enrichers.cuisine_enricher.OpenAIClient") as mock_openai_cls:
        instance = _mock_openai([
            _response('{"cuisine": "Roman"}'),
            _response('{"cuisine": "Restaurant"}'),
        ])
        mock_openai_cls.return_value = instance
        await enrich_candidates(batch)
        await enrich_candidates(batch)

    assert batch[0].cuisine == "Roman"
    assert instance.chat_completions_create.call_count == 1
