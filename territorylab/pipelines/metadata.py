"""
Node Metadata for pipeline introspection.

Annotates pipeline nodes with:
- State fields read and written
- Service functions called
- Provider model usage

Usage:
    from territorylab.pipelines.metadata import NodeMetadata

    @dataclass
    class MyNode(BaseNode[MyState]):
        metadata: ClassVar[NodeMetadata] = NodeMetadata(
            inputs=["brief"],
            outputs=["output"],
            services=["client.generate_text"],
            llm="Gemini",
            llm_purpose="Generate territories",
        )
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class NodeMetadata:
    """
    Metadata for one pipeline node.

    Attributes:
        inputs: State fields read by this node
        outputs: State fields written by this node
        services: Service functions called (e.g., "confidence.enhance_generated_output")
        llm: Provider model used, if any
        llm_purpose: What the model does in this node
    """

    inputs: List[str] = field(default_factory=list)
    outputs: List[str] = field(default_factory=list)
    services: List[str] = field(default_factory=list)
    llm: Optional[str] = None
    llm_purpose: Optional[str] = None

    @property
    def uses_llm(self) -> bool:
        return self.llm is not None


def get_node_metadata(node_class) -> Optional[NodeMetadata]:
    return getattr(node_class, "metadata", None)


def get_pipeline_llm_summary(node_classes: List) -> dict:
    """
    Summarise provider usage across a pipeline's nodes.

    Returns:
        Dict with llm_count, llm_models, and nodes_with_llm
    """
    llm_nodes = []
    llm_models = set()

    for node_class in node_classes:
        metadata = get_node_metadata(node_class)
        if metadata and metadata.uses_llm:
            llm_nodes.append(node_class.__name__)
            llm_models.add(metadata.llm)

    return {
        "llm_count": len(llm_nodes),
        "llm_models": sorted(llm_models),
        "nodes_with_llm": llm_nodes,
    }
