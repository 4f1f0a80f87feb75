from dataclasses import dataclass, field


@dataclass(frozen=True)
class ApiCredential:
    key_id: str
    key_secret: str = field(repr=False)

    @property
    def masked_key_id(self) -> str:
        return f"{self.key_id[:8]}..."
