# src/watermark_pipeline/core/error_handling.py

import logging
from typing import Any, Dict, List


class BatchOperationContextManager:
    """
    Context manager for batch operations to collect and summarize errors.
    """
    def __init__(self, operation_name="Batch Operation"):
        self.operation_name = operation_name
        self.errors: List[Dict[str, Any]] = []
        self.logger = logging.getLogger(self.__class__.__module__ + '.' + self.__class__.__name__)

    def __enter__(self):
        self.logger.info(f"Starting {self.operation_name}.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            self.logger.error(
                f"{self.operation_name} aborted: {exc_val}",
                exc_info=(exc_type, exc_val, exc_tb)
            )
        elif self.errors:
            self.logger.warning(
                f"{self.operation_name} completed with {len(self.errors)} error(s)."
            )
            for i, error_detail in enumerate(self.errors):
                self.logger.error(
                    f"  Error {i+1}/{len(self.errors)} for '{error_detail['item']}': {error_detail['error']}"
                )
        else:
            self.logger.info(f"{self.operation_name} completed successfully.")

        # Never swallow the exception that aborted the batch
        return False

    def add_error(self, error_message: str, item_identifier: str = "Unknown item"):
        """
        Report an error for a specific item within the 'with' block.

        Args:
            error_message (str): The error message or exception string.
            item_identifier (str): A string identifying the item that failed (e.g., a path).
        """
        self.errors.append({"item": item_identifier, "error": str(error_message)})
        self.logger.debug(f"Error added for item '{item_identifier}' in {self.operation_name}: {error_message}")

    @property
    def error_count(self) -> int:
        return len(self.errors)
