import os
import json
import logging
import hashlib
from datetime import datetime
from typing import Optional

from llm_optimizer.core.telemetry import RunTelemetry
from llm_optimizer.workflow.states import WorkflowSnapshot


class DataSaver:
    """Writes finished runs to disk as JSON."""
    def __init__(self, base_dir="outputs"):
        self.base_dir = base_dir
        if not os.path.exists(base_dir):
            os.makedirs(base_dir)

    def clean_filename(self, keyword: str, stamp: Optional[str] = None) -> str:
        """Converts a keyword (plus timestamp) to a valid filename."""
        # MD5 avoids length issues and illegal characters
        stamp = stamp or datetime.now().strftime("%Y%m%dT%H%M%S%f")
        hash_object = hashlib.md5(f"{keyword}|{stamp}".encode())
        return f"{stamp}_{hash_object.hexdigest()[:12]}"

    def save(self, content: str, filename: str, ext: str = "json", verbose: bool = False) -> Optional[str]:
        """Generic save method. Returns the written path."""
        if not content:
            return None

        full_path = os.path.join(self.base_dir, f"{filename}.{ext}")
        os.makedirs(os.path.dirname(full_path), exist_ok=True)
        with open(full_path, 'w', encoding='utf-8') as f:
            f.write(content)
        if verbose:
            logging.info(f"Saved to {full_path} ({len(content)/1024:.2f} KB)")
        return full_path

    def save_run(self, snapshot: WorkflowSnapshot, telemetry: Optional[RunTelemetry] = None,
                 verbose: bool = False) -> Optional[str]:
        """Save a settled run (snapshot plus stage telemetry)."""
        if snapshot.keyword is None:
            return None
        payload = snapshot.to_dict()
        if telemetry is not None:
            payload["telemetry"] = telemetry.to_dict()
        content = json.dumps(payload, indent=2, ensure_ascii=False)
        return self.save(content, self.clean_filename(snapshot.keyword), verbose=verbose)
