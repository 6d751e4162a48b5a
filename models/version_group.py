from dataclasses import dataclass

MAX_GROUP_ID_LENGTH = 64


@dataclass(frozen=True)
class VersionGroupId:
    """Identity of a logical document across its revisions.

    Rows that were never grouped carry no stored id; their group is their own
    primary key rendered as a string. Comparing through this type keeps the two
    forms interchangeable.
    """

    value: str

    @classmethod
    def of(cls, asset_file) -> "VersionGroupId":
        return cls(asset_file.version_group_id or str(asset_file.id))

    @classmethod
    def parse(cls, raw) -> "VersionGroupId":
        if raw is None:
            raise ValueError("Version group id is required")
        value = str(raw).strip()
        if not value:
            raise ValueError("Version group id is required")
        if len(value) > MAX_GROUP_ID_LENGTH:
            raise ValueError("Version group id is too long")
        return cls(value)

    def __str__(self):
        return self.value
