"""
Tests for TerritoryEvolutionService and EvolutionLineage.

Provider calls are mocked with AsyncMock; the jitter source is a MagicMock
so improvement scores are deterministic.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from territorylab.core.config import MarketProfile
from territorylab.services.gemini_service import ParseError, ProviderError
from territorylab.services.models import (
    ComplianceData,
    EvolutionType,
    GeneratedOutput,
    Headline,
    ImageRef,
    SuggestionPriority,
    Territory,
    TerritoryEvolution,
)
from territorylab.services.territory_evolution_service import (
    EVOLUTION_PROMPTS,
    SINGLE_TERRITORY_INSTRUCTION,
    EvolutionFailed,
    EvolutionLineage,
    EvolutionStage,
    TerritoryEvolutionService,
    build_evolution_prompt,
)


BRIEF = "Drive sign-ups among busy families against competitor one-day sales"


def _make_territory(headline_count=3, **overrides):
    defaults = {
        "id": "t1",
        "title": "Everyday Advantage",
        "positioning": "Short",
        "tone": "Warm",
        "headlines": [Headline(text=f"Headline {i}") for i in range(headline_count)],
    }
    defaults.update(overrides)
    return Territory(**defaults)


def _evolved_territory(**overrides):
    defaults = {
        "id": "territory_from_provider",
        "title": "Evolved Advantage",
        "positioning": "Proudly Australian everyday rewards for every family",
        "tone": "authentic and warm",
        "headlines": [Headline(text=f"Evolved {i}") for i in range(3)],
        "starred": True,
    }
    defaults.update(overrides)
    return Territory(**defaults)


def _make_client(territories=None, side_effect=None):
    client = MagicMock()
    client.generate_text = AsyncMock(
        return_value=GeneratedOutput(
            territories=[_evolved_territory()] if territories is None else territories,
            compliance=ComplianceData(),
        ),
        side_effect=side_effect,
    )
    return client


def _make_service(client=None, jitter=0.0, lineage=None):
    rng = MagicMock()
    rng.uniform.return_value = jitter
    return TerritoryEvolutionService(
        client or _make_client(),
        rng=rng,
        profile=MarketProfile(),
        lineage=lineage,
    )


def _make_evolution(evolution_id, parent=None, score=60, original="t1"):
    return TerritoryEvolution(
        id=evolution_id,
        original_territory_id=original,
        evolution_type=EvolutionType.TONE_SHIFT,
        evolution_prompt="prompt",
        resulting_territory=_evolved_territory(id=f"evolved_{evolution_id}"),
        improvement_score=score,
        reasoning="reason",
        parent_evolution_id=parent,
    )


# ============================================================================
# Prompts
# ============================================================================

class TestBuildEvolutionPrompt:

    def test_every_type_has_template(self):
        assert set(EVOLUTION_PROMPTS) == set(EvolutionType)

    def test_fills_placeholders(self):
        prompt = build_evolution_prompt(
            EvolutionType.TONE_SHIFT, _make_territory(), BRIEF, variation="playful",
            profile=MarketProfile(),
        )
        assert "playful" in prompt
        assert "Everyday Advantage" in prompt
        assert BRIEF in prompt
        assert "{" + "variation}" not in prompt

    def test_default_variation(self):
        prompt = build_evolution_prompt(
            EvolutionType.AUDIENCE_PIVOT, _make_territory(), BRIEF, profile=MarketProfile()
        )
        assert "busy families with children" in prompt

    def test_locale_label(self):
        prompt = build_evolution_prompt(
            EvolutionType.CULTURAL_ADAPTATION, _make_territory(), BRIEF,
            profile=MarketProfile(locale_label="Kiwi"),
        )
        assert "Kiwi cultural relevance" in prompt

    def test_excludes_image_data(self):
        territory = _make_territory()
        territory.headlines[0].image_ref = ImageRef(url="data:image/png;base64,AAAA")
        prompt = build_evolution_prompt(EvolutionType.TONE_SHIFT, territory, BRIEF, profile=MarketProfile())
        assert "base64" not in prompt


# ============================================================================
# Suggestions
# ============================================================================

class TestEvolutionSuggestions:

    def test_all_rules_fire(self):
        territory = _make_territory(
            headline_count=2,
            tone="Serious, formal",
            positioning="Consistent value for shoppers",
        )
        suggestions = _make_service().generate_evolution_suggestions(
            territory, "Position us vs competitor sales"
        )

        assert [s.type for s in suggestions] == [
            EvolutionType.TONE_SHIFT,
            EvolutionType.CULTURAL_ADAPTATION,
            EvolutionType.PERFORMANCE_ENHANCEMENT,
            EvolutionType.COMPETITIVE_RESPONSE,
            EvolutionType.AUDIENCE_PIVOT,
        ]

    def test_no_rules_fire(self):
        territory = _make_territory(positioning="Proudly Australian rewards")
        suggestions = _make_service().generate_evolution_suggestions(
            territory, "Reach shoppers with everyday value"
        )
        assert suggestions == []

    def test_audience_pivot_only_without_audience_signal(self):
        territory = _make_territory(positioning="Proudly Australian rewards")
        service = _make_service()

        with_audience = service.generate_evolution_suggestions(territory, "Target busy shoppers")
        without_audience = service.generate_evolution_suggestions(territory, "Launch in spring")

        assert EvolutionType.AUDIENCE_PIVOT not in [s.type for s in with_audience]
        assert EvolutionType.AUDIENCE_PIVOT in [s.type for s in without_audience]

    def test_suggestions_carry_built_prompts(self):
        territory = _make_territory(tone="Formal")
        suggestions = _make_service().generate_evolution_suggestions(territory, BRIEF)

        for suggestion in suggestions:
            assert "Everyday Advantage" in suggestion.prompt
            assert BRIEF in suggestion.prompt

    def test_cultural_priority_and_confidence(self):
        suggestions = _make_service().generate_evolution_suggestions(_make_territory(), "Target shoppers")
        cultural = [s for s in suggestions if s.type == EvolutionType.CULTURAL_ADAPTATION][0]
        assert cultural.priority == SuggestionPriority.HIGH
        assert cultural.confidence == 85


class TestSmartSuggestions:

    def test_ranked_and_limited(self):
        territories = [
            _make_territory(headline_count=2, tone="Serious", id=f"t{i}")
            for i in range(3)
        ]
        ranked = _make_service().generate_smart_suggestions(territories, "Position us vs competitor sales")

        assert len(ranked) == 10
        assert [s.type for s in ranked[:3]] == [EvolutionType.CULTURAL_ADAPTATION] * 3
        assert [s.type for s in ranked[3:6]] == [EvolutionType.COMPETITIVE_RESPONSE] * 3
        assert [s.type for s in ranked[6:9]] == [EvolutionType.PERFORMANCE_ENHANCEMENT] * 3
        assert ranked[9].priority == SuggestionPriority.MEDIUM
        assert ranked[9].confidence == 75

    def test_empty(self):
        assert _make_service().generate_smart_suggestions([], BRIEF) == []


# ============================================================================
# Improvement score
# ============================================================================

class TestImprovementScore:

    def test_all_bonuses(self):
        assert _make_service().calculate_improvement_score(_make_territory(), _evolved_territory()) == 95

    def test_capped_at_95(self):
        service = _make_service(jitter=5.0)
        assert service.calculate_improvement_score(_make_territory(), _evolved_territory()) == 95

    def test_jitter_applied(self):
        service = _make_service(jitter=-5.0)
        assert service.calculate_improvement_score(_make_territory(), _evolved_territory()) == 90

    def test_no_bonuses(self):
        evolved = _evolved_territory(positioning="", headlines=[], tone="flat")
        service = _make_service(jitter=-5.0)
        assert service.calculate_improvement_score(_make_territory(), evolved) == 45

    def test_jitter_range(self):
        service = _make_service()
        service.calculate_improvement_score(_make_territory(), _evolved_territory())
        service.rng.uniform.assert_called_once_with(-5, 5)


# ============================================================================
# Evolution
# ============================================================================

class TestEvolveTerritory:

    @pytest.mark.asyncio
    async def test_success(self):
        client = _make_client()
        service = _make_service(client)
        original = _make_territory()

        evolution = await service.evolve_territory_with_ai(
            original, EvolutionType.CULTURAL_ADAPTATION, "Make it local", BRIEF,
            metadata={"audience": "families"},
        )

        client.generate_text.assert_awaited_once()
        request = client.generate_text.call_args.args[0]
        assert request.startswith("Make it local")
        assert SINGLE_TERRITORY_INSTRUCTION in request

        evolved = evolution.resulting_territory
        assert evolved.id.startswith("evolved_t1_")
        assert evolved.starred is False
        assert evolved.title == "Evolved Advantage"

        assert evolution.id.startswith("evolution_")
        assert evolution.original_territory_id == "t1"
        assert evolution.evolution_prompt == "Make it local"
        assert evolution.improvement_score == 95
        assert evolution.reasoning.endswith("Score: 95/100")
        assert evolution.metadata == {"brief_context": BRIEF, "audience": "families"}
        assert evolution.parent_evolution_id is None

    @pytest.mark.asyncio
    async def test_first_territory_is_used(self):
        client = _make_client(territories=[
            _evolved_territory(title="First"),
            _evolved_territory(title="Second"),
        ])
        evolution = await _make_service(client).evolve_territory_with_ai(
            _make_territory(), EvolutionType.TONE_SHIFT, "prompt", BRIEF
        )
        assert evolution.resulting_territory.title == "First"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [ProviderError("quota"), ParseError("bad json")])
    async def test_provider_failures_raise_evolution_failed(self, error):
        lineage = EvolutionLineage()
        service = _make_service(_make_client(side_effect=error), lineage=lineage)

        with pytest.raises(EvolutionFailed) as exc_info:
            await service.evolve_territory_with_ai(
                _make_territory(), EvolutionType.TONE_SHIFT, "prompt", BRIEF
            )
        assert exc_info.value.stage == EvolutionStage.PROMPT_BUILT
        assert len(lineage) == 0

    @pytest.mark.asyncio
    async def test_empty_response_raises(self):
        service = _make_service(_make_client(territories=[]))
        with pytest.raises(EvolutionFailed) as exc_info:
            await service.evolve_territory_with_ai(
                _make_territory(), EvolutionType.TONE_SHIFT, "prompt", BRIEF
            )
        assert exc_info.value.stage == EvolutionStage.RESULT_PARSED

    @pytest.mark.asyncio
    async def test_records_in_lineage(self):
        lineage = EvolutionLineage()
        service = _make_service(lineage=lineage)

        first = await service.evolve_territory_with_ai(
            _make_territory(), EvolutionType.TONE_SHIFT, "prompt", BRIEF
        )
        second = await service.evolve_territory_with_ai(
            first.resulting_territory, EvolutionType.CULTURAL_ADAPTATION, "prompt", BRIEF,
            parent_evolution_id=first.id,
        )

        assert first.id in lineage
        assert lineage.get(second.id).parent_evolution_id == first.id

    @pytest.mark.asyncio
    async def test_unknown_parent_rejected_before_provider_call(self):
        client = _make_client()
        service = _make_service(client, lineage=EvolutionLineage())

        with pytest.raises(EvolutionFailed) as exc_info:
            await service.evolve_territory_with_ai(
                _make_territory(), EvolutionType.TONE_SHIFT, "prompt", BRIEF,
                parent_evolution_id="evolution_missing",
            )
        assert exc_info.value.stage == EvolutionStage.REQUESTED
        client.generate_text.assert_not_awaited()


# ============================================================================
# Lineage
# ============================================================================

class TestEvolutionLineage:

    def test_history_tree(self):
        lineage = EvolutionLineage()
        lineage.record(_make_evolution("e1", score=60))
        lineage.record(_make_evolution("e2", parent="e1", score=80))
        lineage.record(_make_evolution("e3", parent="e1", score=70))
        lineage.record(_make_evolution("other", original="t2", score=95))

        history = lineage.history("t1")

        assert [e.id for e in history.evolutions] == ["e1", "e2", "e3"]
        assert history.evolution_tree == {"root": ["e1"], "e1": ["e2", "e3"]}
        assert history.best_performing.id == "e2"

    def test_empty_history(self):
        history = EvolutionLineage().history("t1")
        assert history.evolutions == []
        assert history.evolution_tree == {}
        assert history.best_performing is None

    def test_unknown_parent_rejected(self):
        lineage = EvolutionLineage()
        with pytest.raises(ValueError):
            lineage.record(_make_evolution("e2", parent="e1"))

    def test_duplicate_rejected(self):
        lineage = EvolutionLineage()
        lineage.record(_make_evolution("e1"))
        with pytest.raises(ValueError):
            lineage.record(_make_evolution("e1"))
