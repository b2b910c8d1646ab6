from dataclasses import dataclass


@dataclass(frozen=True)
class Classification:
    """Target species/class/subclass triple for a cloned product."""

    species_code: int
    class_code: int
    subclass_code: int

    def __str__(self) -> str:
        return (
            f"species={self.species_code}, class={self.class_code}, "
            f"subclass={self.subclass_code}"
        )
