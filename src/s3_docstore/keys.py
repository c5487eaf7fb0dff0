"""Keys addressing documents and attachment roots.

A key is either a ``SimpleKey`` or a ``CompositeKey``. Composite keys carry a
location chain of ``LocKey`` ancestors, outermost first.
"""

from dataclasses import dataclass
from s3_docstore.errors import ValidationError


_FORBIDDEN_ID_CHARS = ("/", "\\", "\0", "\r", "\n")


def validate_id(value, what="id"):
    if not isinstance(value, str) or not value:
        raise ValidationError(f"{what} must be a non-empty string, got {value!r}")
    for char in _FORBIDDEN_ID_CHARS:
        if char in value:
            raise ValidationError(
                f"{what} contains invalid characters: {value!r}. "
                "Path separators and control characters are not allowed."
            )


def validate_type(value):
    validate_id(value, "type")


@dataclass(frozen=True)
class LocKey:
    """One ancestor reference in a location chain."""

    type: str
    id: str

    def __post_init__(self):
        validate_type(self.type)
        validate_id(self.id)

    def to_dict(self):
        return {"type": self.type, "id": self.id}


@dataclass(frozen=True)
class SimpleKey:
    type: str
    id: str

    def __post_init__(self):
        validate_type(self.type)
        validate_id(self.id)

    @property
    def location_chain(self):
        return ()

    def identity(self):
        """Identity attributes copied into every stored document."""
        return {"type": self.type, "id": self.id}


@dataclass(frozen=True)
class CompositeKey:
    type: str
    id: str
    location_chain: tuple

    def __post_init__(self):
        validate_type(self.type)
        validate_id(self.id)
        chain = tuple(as_loc_key(loc) for loc in self.location_chain or ())
        if not chain:
            raise ValidationError("A composite key needs a non-empty location chain")
        object.__setattr__(self, "location_chain", chain)

    def identity(self):
        return {
            "type": self.type,
            "id": self.id,
            "location_chain": [loc.to_dict() for loc in self.location_chain],
        }


def as_loc_key(value):
    """Accept a LocKey, a ``{"type", "id"}`` mapping or a ``(type, id)`` pair."""
    if isinstance(value, LocKey):
        return value
    if isinstance(value, dict):
        try:
            return LocKey(value["type"], value["id"])
        except KeyError as e:
            raise ValidationError(f"Location is missing {e.args[0]!r}") from e
    if isinstance(value, (tuple, list)) and len(value) == 2:
        return LocKey(*value)
    raise ValidationError(f"Not a location reference: {value!r}")


def make_key(type_, id_, location_chain=None):
    """Build a simple or composite key depending on the location chain."""
    if location_chain:
        return CompositeKey(type_, id_, tuple(location_chain))
    return SimpleKey(type_, id_)


def key_from_document(doc):
    """Recover the key stored in a document's identity attributes."""
    return make_key(doc["type"], doc["id"], doc.get("location_chain"))
