from typing import Any

from product_migrator.cloning.column_catalog import sanitize_identifier
from product_migrator.cloning.models import Classification


def classification_exists(cur: Any, classification: Classification, owner: str) -> bool:
    """Check the classification triple against the SUB_CLAS reference table."""
    cur.execute(
        f"""
        SELECT 1
          FROM {sanitize_identifier(owner)}.sub_clas
         WHERE cd_especie = :p_especie
           AND cd_classe = :p_classe
           AND cd_sub_cla = :p_sub_cla
        """,
        {
            "p_especie": classification.species_code,
            "p_classe": classification.class_code,
            "p_sub_cla": classification.subclass_code,
        },
    )
    return cur.fetchone() is not None
