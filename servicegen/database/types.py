"""SQL -> Java type resolution.

Works on the SQLAlchemy type objects returned by reflection, so the result
does not depend on dialect-specific type names.  Order matters in
``_TYPE_RULES``: subclasses (``BigInteger``) must come before their bases
(``Integer``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import types as sqltypes


@dataclass(frozen=True)
class JavaType:
    """A Java type as used in generated sources."""
    name: str
    import_name: Optional[str] = None


OBJECT = JavaType("Object")

_TYPE_RULES: list[tuple[type, JavaType]] = [
    (sqltypes.Boolean, JavaType("Boolean")),
    (sqltypes.BigInteger, JavaType("Long")),
    (sqltypes.SmallInteger, JavaType("Short")),
    (sqltypes.Integer, JavaType("Integer")),
    (sqltypes.Float, JavaType("Double")),
    (sqltypes.Numeric, JavaType("BigDecimal", "java.math.BigDecimal")),
    (sqltypes.Date, JavaType("LocalDate", "java.time.LocalDate")),
    (sqltypes.Time, JavaType("LocalTime", "java.time.LocalTime")),
    (sqltypes.Interval, JavaType("Duration", "java.time.Duration")),
    (sqltypes.Uuid, JavaType("UUID", "java.util.UUID")),
    (sqltypes.LargeBinary, JavaType("byte[]")),
    (sqltypes.JSON, JavaType("String")),
    (sqltypes.Enum, JavaType("String")),
    (sqltypes.String, JavaType("String")),
]

# Simple name -> fully qualified import, for types that need one.
JAVA_IMPORTS: dict[str, str] = {
    jt.name: jt.import_name for _, jt in _TYPE_RULES if jt.import_name
}
JAVA_IMPORTS["LocalDateTime"] = "java.time.LocalDateTime"
JAVA_IMPORTS["OffsetDateTime"] = "java.time.OffsetDateTime"


def resolve_java_type(sql_type: sqltypes.TypeEngine) -> JavaType:
    """Map a reflected SQLAlchemy column type to a Java type.

    ``DateTime`` resolves to ``OffsetDateTime`` when the column carries a time
    zone and to ``LocalDateTime`` otherwise.  Unknown types (``NullType``,
    dialect extensions without a generic base) become ``Object``.
    """
    if isinstance(sql_type, sqltypes.DateTime):
        if getattr(sql_type, "timezone", False):
            return JavaType("OffsetDateTime", JAVA_IMPORTS["OffsetDateTime"])
        return JavaType("LocalDateTime", JAVA_IMPORTS["LocalDateTime"])

    for sql_cls, java_type in _TYPE_RULES:
        if isinstance(sql_type, sql_cls):
            return java_type
    return OBJECT


def import_for(type_name: str) -> Optional[str]:
    """Return the import needed to use *type_name*, or ``None``."""
    return JAVA_IMPORTS.get(type_name)
