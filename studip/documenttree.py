"""Semesters, courses, folders and files as returned by

    api.php/studip-client-core/documenttree/
"""

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from studip.errors import DecodeError

INVALID_CHARS = frozenset('~"#%&*:<>?/\\{|}')


def sanitize(name: str) -> str:
    return "".join(s for s in name if s not in INVALID_CHARS).strip()


def _object(data: Any, what: str) -> Dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise DecodeError(f"Expected an object for {what}, got {type(data).__name__}")
    return data


def _list(data: Dict[str, Any], key: str) -> List[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise DecodeError(f"Expected a list for {key}, got {type(value).__name__}")
    return value


def _str(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise DecodeError(f"Expected a string for {key}, got {type(value).__name__}")
    return value


def _bool(data: Dict[str, Any], key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise DecodeError(f"Expected a boolean for {key}, got {type(value).__name__}")
    return value


@dataclass
class Permissions:
    visible: bool = False
    writable: bool = False
    readable: bool = False
    extendable: bool = False

    @classmethod
    def from_json(cls, data: Any) -> "Permissions":
        data = _object(data, "permissions")
        return cls(
            visible=_bool(data, "visible"),
            writable=_bool(data, "writable"),
            readable=_bool(data, "readable"),
            extendable=_bool(data, "extendable"),
        )


@dataclass
class File:
    document_id: str = ""
    name: str = ""
    mkdate: str = ""
    chdate: str = ""
    filename: str = ""
    filesize: str = ""
    protection: str = ""
    mime_type: str = ""

    @classmethod
    def from_json(cls, data: Any) -> "File":
        data = _object(data, "file")
        return cls(
            **{
                key: _str(data, key)
                for key in (
                    "document_id",
                    "name",
                    "mkdate",
                    "chdate",
                    "filename",
                    "filesize",
                    "protection",
                    "mime_type",
                )
            }
        )

    @property
    def sanitized_name(self) -> str:
        return sanitize(self.filename or self.name)


@dataclass
class Folder:
    folder_id: str = ""
    name: str = ""
    mkdate: str = ""
    chdate: str = ""
    permissions: Permissions = field(default_factory=Permissions)
    subfolders: List["Folder"] = field(default_factory=list)
    files: List[File] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Any) -> "Folder":
        data = _object(data, "folder")
        return cls(
            folder_id=_str(data, "folder_id"),
            name=_str(data, "name"),
            mkdate=_str(data, "mkdate"),
            chdate=_str(data, "chdate"),
            permissions=Permissions.from_json(data.get("permissions")),
            subfolders=[Folder.from_json(f) for f in _list(data, "subfolders")],
            files=[File.from_json(f) for f in _list(data, "files")],
        )

    @property
    def sanitized_name(self) -> str:
        return sanitize(self.name)

    def list_files(self, root: Optional[PurePosixPath] = None) -> Iterable[PurePosixPath]:
        """Paths of this folder, its files and everything below it"""
        if not root:
            root = PurePosixPath("/")
        path = root / self.sanitized_name
        yield path
        for file in self.files:
            yield path / file.sanitized_name
        for subfolder in self.subfolders:
            yield from subfolder.list_files(path)

    def walk_files(
        self, parents: Tuple[str, ...] = ()
    ) -> Iterator[Tuple[Tuple[str, ...], File]]:
        path = parents + (self.name,)
        for file in self.files:
            yield path, file
        for subfolder in self.subfolders:
            yield from subfolder.walk_files(path)


@dataclass
class Course:
    course_id: str = ""
    course_nr: str = ""
    title: str = ""
    folders: List[Folder] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Any) -> "Course":
        data = _object(data, "course")
        return cls(
            course_id=_str(data, "course_id"),
            course_nr=_str(data, "course_nr"),
            title=_str(data, "title"),
            folders=[Folder.from_json(f) for f in _list(data, "folders")],
        )


@dataclass
class Semester:
    semester_id: str = ""
    title: str = ""
    description: str = ""
    courses: List[Course] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Any) -> "Semester":
        data = _object(data, "semester")
        return cls(
            semester_id=_str(data, "semester_id"),
            title=_str(data, "title"),
            description=_str(data, "description"),
            courses=[Course.from_json(c) for c in _list(data, "courses")],
        )


class DocumentTree(list):
    """Ordered list of Semester entries"""

    @classmethod
    def from_json(cls, data: Any) -> "DocumentTree":
        if data is None:
            return cls()
        if not isinstance(data, list):
            raise DecodeError(
                f"Expected a list of semesters, got {type(data).__name__}"
            )
        return cls(Semester.from_json(s) for s in data)

    def walk_files(self) -> Iterator[Tuple[Tuple[str, ...], File]]:
        """Every file with the titles and folder names leading to it"""
        for semester in self:
            for course in semester.courses:
                for folder in course.folders:
                    yield from folder.walk_files((semester.title, course.title))

    def find_file(self, document_id: str) -> Optional[File]:
        for _, file in self.walk_files():
            if file.document_id == document_id:
                return file
        return None
