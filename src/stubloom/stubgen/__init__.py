from .builder import StubContext, StubFileBuilder
from .exceptions import (
    DestinationError,
    SourceRootNotFoundError,
    StubgenError,
)
from .generator import StubGenerator
from .imports import ImportCollector, TypeResolver
from .inference import AttributeTypeInferer, GetterTypeInferer, RedirectResolver
from .merger import StubMerger
from .optimizer import ImportOptimizer, ImportPipeline
from .parameters import ParameterSynthesizer
from .runner import SourceTreeWalker

__all__ = [
    "AttributeTypeInferer",
    "DestinationError",
    "GetterTypeInferer",
    "ImportCollector",
    "ImportOptimizer",
    "ImportPipeline",
    "ParameterSynthesizer",
    "RedirectResolver",
    "SourceRootNotFoundError",
    "SourceTreeWalker",
    "StubContext",
    "StubFileBuilder",
    "StubGenerator",
    "StubMerger",
    "StubgenError",
    "TypeResolver",
]
