"""Identifier naming strategy.

Turns raw database identifiers (``tb_order_item``) into Java type and member
names (``OrderItem``, ``OrderItemEntity``, ``orderItem``).  Everything here is
pure: no I/O and no state.

Callers must always pass the *raw* identifier.  The ``tb_`` prefix is only
recognised on the original name, so feeding an already-resolved name back in
is not supported.
"""

from __future__ import annotations

from enum import Enum
from pathlib import PurePosixPath

TABLE_PREFIX = "tb_"
ENTITY_SUFFIX = "Entity"

_JAVA_KEYWORDS: frozenset[str] = frozenset({
    "abstract", "assert", "boolean", "break", "byte", "case", "catch", "char",
    "class", "const", "continue", "default", "do", "double", "else", "enum",
    "extends", "final", "finally", "float", "for", "goto", "if", "implements",
    "import", "instanceof", "int", "interface", "long", "native", "new",
    "package", "private", "protected", "public", "return", "short", "static",
    "strictfp", "super", "switch", "synchronized", "this", "throw", "throws",
    "transient", "try", "void", "volatile", "while", "true", "false", "null",
    "record", "var", "yield",
})


class NamingMode(str, Enum):
    """What kind of type a name is resolved for."""
    ENTITY = "ENTITY"
    DATA_OBJECT = "DATA_OBJECT"


def to_pascal_case(value: str) -> str:
    """Convert ``snake_case`` to ``PascalCase``.

    Each non-empty ``_`` segment gets an upper-case first character and a
    lower-cased remainder, so ``ORDER_item`` becomes ``OrderItem``.
    """
    return "".join(
        part[:1].upper() + part[1:].lower()
        for part in value.split("_")
        if part
    )


def to_camel_case(value: str) -> str:
    """Convert ``snake_case`` to ``camelCase``."""
    pascal = to_pascal_case(value)
    return pascal[:1].lower() + pascal[1:]


def resolve_type_name(raw_identifier: str, mode: NamingMode) -> str:
    """Map a raw table name to a Java type name.

    The ``tb_`` prefix is stripped, the remainder is PascalCased and, in
    ``ENTITY`` mode, ``Entity`` is appended::

        resolve_type_name("tb_order_item", NamingMode.DATA_OBJECT) -> "OrderItem"
        resolve_type_name("tb_order_item", NamingMode.ENTITY)      -> "OrderItemEntity"

    When stripping the prefix leaves nothing (``"tb_"``), the raw identifier is
    used unmodified instead, giving ``"Tb"``.

    Raises:
        ValueError: If *raw_identifier* contains no name segment at all.
    """
    body = raw_identifier
    if body.startswith(TABLE_PREFIX):
        body = body[len(TABLE_PREFIX):]

    name = to_pascal_case(body)
    if not name:
        name = to_pascal_case(raw_identifier)
    if not name:
        raise ValueError(f"Cannot derive a type name from {raw_identifier!r}")

    if mode is NamingMode.ENTITY:
        return name + ENTITY_SUFFIX
    return name


def resolve_member_name(raw_identifier: str) -> str:
    """Map a raw column name to a Java field name (``created_at`` -> ``createdAt``).

    Java keywords get a trailing underscore (``class`` -> ``class_``).
    """
    name = to_camel_case(raw_identifier) or raw_identifier
    if name[:1].isdigit():
        name = f"_{name}"
    if name in _JAVA_KEYWORDS:
        name = f"{name}_"
    return name


def is_java_identifier(name: str) -> bool:
    """True when *name* can be used as a Java class or member name."""
    return name.isidentifier() and name not in _JAVA_KEYWORDS


def package_to_path(package_name: str) -> PurePosixPath:
    """``com.example.demo`` -> ``com/example/demo``."""
    return PurePosixPath(*[p for p in package_name.split(".") if p])
