from typing import List, Optional, Protocol

from .models import ClassDecl, FunctionDecl, SourceModule, StubFile


class LanguageParserProtocol(Protocol):
    def parse(
        self, source_code: str, file_path: str = "", module_name: str = ""
    ) -> SourceModule: ...


class SourceIndexProtocol(Protocol):
    def class_candidates(self, name: str, prefix: str = "") -> List[ClassDecl]: ...

    def function_candidates(
        self, name: str, contains: str = ""
    ) -> List[FunctionDecl]: ...

    def get_class(self, qualified_name: str) -> Optional[ClassDecl]: ...

    def get_module(self, name: str) -> Optional[SourceModule]: ...


class StubSerializerProtocol(Protocol):
    def serialize(self, stub_file: StubFile, existing_code: str = "") -> str: ...
