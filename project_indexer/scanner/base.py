"""
Base scanner class for code analysis.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path

from ..models import Dependency, FileInfo, Route, Symbol


class BaseScanner(ABC):
    """
    Scanner base class

    Subclasses must implement:
    - scan_file(): Scan a single file and extract symbols, routes and dependencies
    - supported_extensions: List of supported file extensions
    """

    supported_extensions: list[str] = []

    @abstractmethod
    def scan_file(
        self,
        file_path: str,
        content: str,
    ) -> tuple[list[Symbol], list[Route], list[Dependency]]:
        """
        Scan a single file

        Returns:
            (symbols, routes, dependencies)
        """
        pass

    def parse_file(self, file_path: str) -> tuple[list[Symbol], list[Route], list[Dependency]]:
        """Read a file from disk and scan it (raises OSError / UnicodeDecodeError)"""
        content = Path(file_path).read_text(encoding="utf-8-sig")
        return self.scan_file(file_path, content)

    def can_scan(self, file_path: str) -> bool:
        """Check if this file type is supported"""
        return Path(file_path).suffix in self.supported_extensions

    def create_file_info(self, file_path: str, project_root: str) -> FileInfo:
        """Stat a file and build its FileInfo"""
        path = Path(file_path)
        stat = path.stat()
        return FileInfo(
            path=str(path),
            name=path.name,
            extension=path.suffix,
            size=stat.st_size,
            last_modified=datetime.fromtimestamp(stat.st_mtime),
            relative_path=str(path.relative_to(project_root)) if path.is_relative_to(project_root) else str(path),
            is_directory=path.is_dir(),
        )


class ScanResult:
    """Scan result container"""

    def __init__(self):
        self.files: list[FileInfo] = []
        self.symbols: list[Symbol] = []
        self.routes: list[Route] = []
        self.dependencies: list[Dependency] = []
        self.errors: list[dict] = []

    def add_file_result(
        self,
        file_info: FileInfo,
        symbols: list[Symbol],
        routes: list[Route],
        dependencies: list[Dependency],
    ):
        self.files.append(file_info)
        self.symbols.extend(symbols)
        self.routes.extend(routes)
        self.dependencies.extend(dependencies)

    def add_error(self, file_path: str, error: str):
        self.errors.append({"file": file_path, "error": error})

    def summary(self) -> dict:
        return {
            "files_scanned": len(self.files),
            "symbols_found": len(self.symbols),
            "routes_found": len(self.routes),
            "dependencies_found": len(self.dependencies),
            "errors": len(self.errors),
        }
