"""Result persistence using Parquet + JSON sidecar."""

from __future__ import annotations

import json
import logging
import uuid
from pathlib import Path
from typing import Any

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

logger = logging.getLogger(__name__)


class ResultStore:
    """Persistent store for NFD result tables.

    Storage format:
    - {store_dir}/{run_id}.parquet: the result table
    - {store_dir}/{run_id}.json: configuration and summary sidecar
    - {store_dir}/index.json: queryable index of all runs
    """

    def __init__(self, store_dir: str | Path) -> None:
        self.store_dir = Path(store_dir)
        self.store_dir.mkdir(parents=True, exist_ok=True)
        self._index_path = self.store_dir / "index.json"
        self._index: list[dict] = self._load_index()

    def _load_index(self) -> list[dict]:
        if self._index_path.exists():
            with open(self._index_path) as f:
                return json.load(f)
        return []

    def _save_index(self) -> None:
        with open(self._index_path, "w") as f:
            json.dump(self._index, f, indent=2)

    def save(
        self,
        table: pd.DataFrame,
        kind: str,
        config: dict[str, Any] | None = None,
        run_id: str | None = None,
    ) -> str:
        """Save a result table and return its run ID.

        Args:
            table: result rows (one per species, replicate and parameter set).
            kind: "synthetic" or "empirical".
            config: configuration that produced the table.
            run_id: explicit ID; a random one is generated otherwise.
        """
        run_id = run_id or str(uuid.uuid4())[:12]

        pq.write_table(
            pa.Table.from_pandas(table, preserve_index=False),
            self.store_dir / f"{run_id}.parquet",
        )

        n_ok = int((table["status"] == "ok").sum()) if "status" in table.columns else len(table)
        meta = {
            "id": run_id,
            "kind": kind,
            "config": config or {},
            "n_rows": len(table),
            "n_ok": n_ok,
            "columns": list(table.columns),
        }
        with open(self.store_dir / f"{run_id}.json", "w") as f:
            json.dump(meta, f, indent=2, default=str)

        self._index.append({"id": run_id, "kind": kind, "n_rows": len(table), "n_ok": n_ok})
        self._save_index()
        logger.info(f"Saved {kind} run {run_id} ({len(table)} rows) to {self.store_dir}")
        return run_id

    def load(self, run_id: str) -> pd.DataFrame:
        """Load a result table by ID."""
        return pq.read_table(self.store_dir / f"{run_id}.parquet").to_pandas()

    def load_metadata(self, run_id: str) -> dict[str, Any]:
        """Load the sidecar of a run."""
        with open(self.store_dir / f"{run_id}.json") as f:
            return json.load(f)

    def query(self, kind: str | None = None) -> list[str]:
        """Run IDs matching criteria, oldest first."""
        return [e["id"] for e in self._index if kind is None or e.get("kind") == kind]

    def latest(self, kind: str | None = None) -> str | None:
        """Most recently saved run ID, or None if the store is empty."""
        ids = self.query(kind)
        return ids[-1] if ids else None

    def list_all(self) -> list[dict]:
        """Return the full index."""
        return list(self._index)
