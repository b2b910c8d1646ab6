from product_migrator.cloning.classification import classification_exists
from product_migrator.cloning.models import Classification
from product_migrator.database.primary_connection import get_primary_connection
from product_migrator.logging.logger import Log


class ClassificationValidator:
    """Ad-hoc classification checks on their own short-lived session.

    Safe to call while a job is running: it never touches the job's session.
    """

    def __init__(self, owner: str = "DBAMV") -> None:
        self._owner = owner

    def validate(self, classification: Classification) -> bool:
        """Return True if the triple exists in the SUB_CLAS reference table."""
        with get_primary_connection() as conn:
            with conn.cursor() as cur:
                valid = classification_exists(cur, classification, self._owner)
        if not valid:
            Log.info(f"Classification rejected: {classification}")
        return valid
