# Pipeline stages
from .toy_analyzer import ToyAnalyzer
from .story_composer import StoryComposer, get_personality_description
from .page_illustrator import PageIllustrator

# Provenance signing
from .provenance_signer import (
    ProvenanceSigner,
    LocalProvenanceSigner,
    HttpProvenanceSigner,
    get_default_signer,
)

__all__ = [
    "ToyAnalyzer",
    "StoryComposer",
    "get_personality_description",
    "PageIllustrator",
    "ProvenanceSigner",
    "LocalProvenanceSigner",
    "HttpProvenanceSigner",
    "get_default_signer",
]
