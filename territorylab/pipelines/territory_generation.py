"""
Territory Generation Pipeline - Pydantic Graph workflow.

Pipeline: AnalyzeBrief → GenerateTerritories → ScoreTerritories
          → GenerateImages (optional) → MergeStarred (regeneration only)
          → CompileResults

1. Score the brief (informational, never blocks generation)
2. Generate 6 territories x 3 headlines with one provider call
3. Attach heuristic confidence to every territory
4. Generate one background image per headline in rate-limited batches
5. On regeneration, merge with the previous output so starred items survive
6. Return the final output with metrics

A failed text generation is a hard error and propagates to the caller.
Failed images only leave headlines without an image.
"""

import logging
from dataclasses import dataclass
from typing import ClassVar, Optional, Union

from pydantic_graph import BaseNode, End, Graph, GraphRunContext

from ..core.observability import get_logfire
from ..services.brief_analysis_service import analyze_brief
from ..services.confidence_service import enhance_generated_output, rescore_unpinned
from ..services.merge_service import mark_starred, merge_regenerated_output
from ..services.models import GeneratedOutput, StarredItems
from .dependencies import TerritoryDependencies
from .metadata import NodeMetadata, get_pipeline_llm_summary
from .states import TerritoryGenerationState

logger = logging.getLogger(__name__)


def build_generation_prompt(brief: str) -> str:
    return (
        "Develop creative territories for the following brief.\n\n"
        f"CREATIVE BRIEF:\n{brief.strip()}\n\n"
        "Return exactly 6 territories with exactly 3 headlines each, plus compliance notes, as JSON."
    )


@dataclass
class AnalyzeBriefNode(BaseNode[TerritoryGenerationState]):
    """
    Step 1: Score the brief.

    The analysis is returned to the caller as feedback; a weak brief is
    still generated.
    """

    metadata: ClassVar[NodeMetadata] = NodeMetadata(
        inputs=["brief"],
        outputs=["brief_analysis"],
        services=["brief_analysis.analyze_brief"],
    )

    async def run(
        self,
        ctx: GraphRunContext[TerritoryGenerationState, TerritoryDependencies]
    ) -> "GenerateTerritoriesNode":
        logger.info("Step 1: Analyzing brief")
        ctx.state.current_step = "analyzing_brief"

        ctx.state.brief_analysis = analyze_brief(ctx.state.brief, ctx.deps.profile)

        logger.info(f"Brief score: {ctx.state.brief_analysis.score}/100")
        return GenerateTerritoriesNode()


@dataclass
class GenerateTerritoriesNode(BaseNode[TerritoryGenerationState]):
    """Step 2: Generate territories with a single provider call."""

    metadata: ClassVar[NodeMetadata] = NodeMetadata(
        inputs=["brief"],
        outputs=["output"],
        services=["client.generate_text"],
        llm="Gemini",
        llm_purpose="Generate 6 creative territories with 3 headlines each",
    )

    async def run(
        self,
        ctx: GraphRunContext[TerritoryGenerationState, TerritoryDependencies]
    ) -> "ScoreTerritoriesNode":
        logger.info("Step 2: Generating territories")
        ctx.state.current_step = "generating"

        try:
            ctx.state.output = await ctx.deps.client.generate_text(
                build_generation_prompt(ctx.state.brief)
            )
        except Exception as e:
            ctx.state.error = str(e)
            ctx.state.current_step = "failed"
            logger.error(f"Territory generation failed: {e}")
            raise

        logger.info(f"Generated {len(ctx.state.output.territories)} territories")
        return ScoreTerritoriesNode()


@dataclass
class ScoreTerritoriesNode(BaseNode[TerritoryGenerationState]):
    """Step 3: Attach confidence scores and the overall confidence."""

    metadata: ClassVar[NodeMetadata] = NodeMetadata(
        inputs=["output", "brief"],
        outputs=["output"],
        services=["confidence.enhance_generated_output"],
    )

    async def run(
        self,
        ctx: GraphRunContext[TerritoryGenerationState, TerritoryDependencies]
    ) -> Union["GenerateImagesNode", "MergeStarredNode", "CompileResultsNode"]:
        logger.info("Step 3: Scoring territories")
        ctx.state.current_step = "scoring"

        enhance_generated_output(ctx.state.output, ctx.state.brief, ctx.deps.profile)

        if ctx.state.generate_images:
            return GenerateImagesNode()
        if ctx.state.is_regeneration:
            return MergeStarredNode()
        return CompileResultsNode()


@dataclass
class GenerateImagesNode(BaseNode[TerritoryGenerationState]):
    """
    Step 4: One background image per headline.

    Runs on the freshly generated output, before any merge, so previously
    starred content is never touched.
    """

    metadata: ClassVar[NodeMetadata] = NodeMetadata(
        inputs=["output", "brief"],
        outputs=["output", "image_results"],
        services=["images.attach_images"],
        llm="Gemini Image",
        llm_purpose="Generate vertical background images for headlines",
    )

    async def run(
        self,
        ctx: GraphRunContext[TerritoryGenerationState, TerritoryDependencies]
    ) -> Union["MergeStarredNode", "CompileResultsNode"]:
        logger.info("Step 4: Generating images")
        ctx.state.current_step = "generating_images"

        ctx.state.image_results = await ctx.deps.images.attach_images(
            ctx.state.output.territories, ctx.state.brief
        )

        if ctx.state.is_regeneration:
            return MergeStarredNode()
        return CompileResultsNode()


@dataclass
class MergeStarredNode(BaseNode[TerritoryGenerationState]):
    """
    Step 5: Keep starred territories and headlines from the previous output.

    Unpinned territories are re-scored afterwards, since a kept headline
    changes what the territory says.
    """

    metadata: ClassVar[NodeMetadata] = NodeMetadata(
        inputs=["output", "previous_output", "starred"],
        outputs=["output"],
        services=["merge.merge_regenerated_output", "confidence.rescore_unpinned"],
    )

    async def run(
        self,
        ctx: GraphRunContext[TerritoryGenerationState, TerritoryDependencies]
    ) -> "CompileResultsNode":
        logger.info("Step 5: Merging starred items")
        ctx.state.current_step = "merging"

        starred = ctx.state.starred or StarredItems()
        try:
            merged = merge_regenerated_output(ctx.state.output, ctx.state.previous_output, starred)
        except Exception as e:
            ctx.state.error = str(e)
            ctx.state.current_step = "failed"
            logger.error(f"Merge failed: {e}")
            raise

        ctx.state.output = mark_starred(merged, starred)
        rescore_unpinned(
            ctx.state.output, ctx.state.brief, set(starred.territories), ctx.deps.profile
        )
        return CompileResultsNode()


@dataclass
class CompileResultsNode(BaseNode[TerritoryGenerationState]):
    """Step 6: Final output and run metrics."""

    metadata: ClassVar[NodeMetadata] = NodeMetadata(
        inputs=["output", "brief_analysis", "image_results"],
        outputs=[],
    )

    async def run(
        self,
        ctx: GraphRunContext[TerritoryGenerationState, TerritoryDependencies]
    ) -> End[dict]:
        ctx.state.current_step = "complete"

        output = ctx.state.output
        images_failed = sum(1 for r in ctx.state.image_results if r.image_ref is None)
        logger.info(f"Territory generation complete: {len(output.territories)} territories")

        return End({
            "status": "success",
            "output": output,
            "brief_analysis": ctx.state.brief_analysis,
            "image_results": ctx.state.image_results,
            "pipeline": get_pipeline_llm_summary(TERRITORY_GENERATION_NODES),
            "metrics": {
                "territories": len(output.territories),
                "headlines": sum(len(t.headlines) for t in output.territories),
                "overall_confidence": output.overall_confidence,
                "images_generated": len(ctx.state.image_results) - images_failed,
                "images_failed": images_failed,
                "regenerated": ctx.state.is_regeneration,
            },
        })


TERRITORY_GENERATION_NODES = (
    AnalyzeBriefNode,
    GenerateTerritoriesNode,
    ScoreTerritoriesNode,
    GenerateImagesNode,
    MergeStarredNode,
    CompileResultsNode,
)

# Build the graph
territory_generation_graph = Graph(
    nodes=TERRITORY_GENERATION_NODES,
    name="territory_generation"
)


async def run_territory_generation(
    brief: str,
    generate_images: bool = True,
    previous_output: Optional[GeneratedOutput] = None,
    starred: Optional[StarredItems] = None,
    deps: Optional[TerritoryDependencies] = None,
) -> dict:
    """
    Run the territory generation pipeline.

    Args:
        brief: Creative brief text
        generate_images: Request one image per headline (default True)
        previous_output: Output to regenerate; enables the starred merge
        starred: Items pinned in previous_output
        deps: Dependencies (default: TerritoryDependencies.create())

    Returns:
        Dict with status, output, brief_analysis, image_results, pipeline
        (provider usage summary) and metrics

    Raises:
        ProviderError, ParseError: Text generation failed
        MergeError: Regeneration returned a different number of territories

    Example:
        >>> result = await run_territory_generation(
        ...     "Drive Christmas sign-ups among busy families against competitor sales",
        ...     generate_images=False,
        ... )
        >>> result["output"].territories[0].confidence.risk_level
    """
    deps = deps or TerritoryDependencies.create()

    state = TerritoryGenerationState(
        brief=brief,
        generate_images=generate_images,
        previous_output=previous_output,
        starred=starred,
    )

    with get_logfire().span("territory_generation", regenerate=state.is_regeneration):
        result = await territory_generation_graph.run(
            AnalyzeBriefNode(),
            state=state,
            deps=deps,
        )

    return result.output
