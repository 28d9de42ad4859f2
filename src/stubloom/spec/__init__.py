from .models import (
    AttributeDecl,
    AttributeStub,
    ClassDecl,
    ClassStub,
    Declaration,
    FunctionDecl,
    FunctionStub,
    GenerationReport,
    ImportEdge,
    Parameter,
    ParameterKind,
    SourceModule,
    StubDeclaration,
    StubFile,
    TypeHint,
)
from .protocols import (
    LanguageParserProtocol,
    SourceIndexProtocol,
    StubSerializerProtocol,
)

__all__ = [
    "LanguageParserProtocol",
    "SourceIndexProtocol",
    "StubSerializerProtocol",
    "AttributeDecl",
    "AttributeStub",
    "ClassDecl",
    "ClassStub",
    "Declaration",
    "FunctionDecl",
    "FunctionStub",
    "GenerationReport",
    "ImportEdge",
    "Parameter",
    "ParameterKind",
    "SourceModule",
    "StubDeclaration",
    "StubFile",
    "TypeHint",
]
