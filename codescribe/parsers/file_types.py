"""File classification by extension and file name."""

from pathlib import PurePath

from codescribe.parsers.structure import FileType

_EXTENSION_TYPES: dict[str, FileType] = {
    ".ts": FileType.TYPESCRIPT,
    ".tsx": FileType.TYPESCRIPT,
    ".js": FileType.JAVASCRIPT,
    ".jsx": FileType.JAVASCRIPT,
    ".mjs": FileType.JAVASCRIPT,
    ".cjs": FileType.JAVASCRIPT,
    ".vue": FileType.VUE,
    ".svelte": FileType.SVELTE,
    ".css": FileType.CSS,
    ".scss": FileType.SCSS,
    ".sass": FileType.SCSS,
    ".html": FileType.HTML,
    ".json": FileType.JSON,
    ".yaml": FileType.YAML,
    ".yml": FileType.YAML,
    ".md": FileType.MARKDOWN,
    ".py": FileType.PYTHON,
    ".go": FileType.GO,
    ".rs": FileType.RUST,
    ".java": FileType.JAVA,
}

# Matched only when the extension is not recognised.
_CONFIG_FILENAMES = {
    "Dockerfile",
    "Procfile",
    "netlify.toml",
    ".env.example",
    "schema.prisma",
}

_SCRIPT_TYPES = {FileType.TYPESCRIPT, FileType.JAVASCRIPT}


def classify_file(path: str) -> FileType:
    """Map a file path to its semantic file type.

    The extension decides first (case-insensitive); well-known
    extensionless configuration files are tagged as CONFIG; anything
    else is UNKNOWN.

    Args:
        path: Absolute or relative file path.

    Returns:
        The FileType tag for the path.
    """
    pure = PurePath(path)
    file_type = _EXTENSION_TYPES.get(pure.suffix.lower())
    if file_type is not None:
        return file_type
    if pure.name in _CONFIG_FILENAMES:
        return FileType.CONFIG
    return FileType.UNKNOWN


def is_script(file_type: FileType) -> bool:
    """Whether files of this type go through the JS/TS fact extractor."""
    return file_type in _SCRIPT_TYPES


def is_tsx(path: str) -> bool:
    """Whether the path needs the TSX grammar."""
    return PurePath(path).suffix.lower() == ".tsx"


def is_typescript(path: str) -> bool:
    """Whether the path needs a TypeScript grammar."""
    return PurePath(path).suffix.lower() in (".ts", ".tsx")
