"""
Export Service - GeoJSON snapshot output for accepted stores.

Builds the FeatureCollection consumed by the static map and writes it
with a guard that keeps the last good snapshot when a run comes back empty.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from src.shared.collector import ResolvedRecord
from src.shared.constants import OUTPUT
from src.shared.io import read_json, write_json_atomic


class ExportService:
    """Helpers for turning resolved records into GeoJSON."""

    @staticmethod
    def build_feature(record: ResolvedRecord, brand: str) -> Dict[str, Any]:
        """
        Build one GeoJSON Feature from a resolved record.

        Args:
            record: Resolved record with a point geometry
            brand: Brand label written on the feature

        Returns:
            GeoJSON Feature dictionary
        """
        return {
            "type": "Feature",
            "geometry": record.geometry,
            "properties": {
                "id": record.id,
                "name": record.name,
                # The description field usually carries the street address
                "address": record.description,
                "brand": brand,
                "icon": record.icon,
            },
        }

    @staticmethod
    def generate_feature_collection(
        features: List[Dict[str, Any]],
        metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Wrap features in a FeatureCollection.

        Args:
            features: GeoJSON Feature dictionaries
            metadata: Optional run diagnostics

        Returns:
            GeoJSON FeatureCollection dictionary
        """
        collection: Dict[str, Any] = {
            "type": "FeatureCollection",
            "features": list(features),
        }
        if metadata is not None:
            collection["metadata"] = metadata
        return collection

    @staticmethod
    def build_metadata(source: str, ids_seen: int, accepted: int, **extra) -> Dict[str, Any]:
        """Run diagnostics stored next to the features."""
        metadata = {
            "source": source,
            "ids": ids_seen,
            "accepted": accepted,
        }
        metadata.update(extra)
        metadata["generated_at"] = datetime.now(timezone.utc).isoformat()
        return metadata


def count_features(path: Union[str, Path]) -> Optional[int]:
    """Number of features in an existing artifact, None if it can't be read."""
    data = read_json(path)
    if not isinstance(data, dict) or not isinstance(data.get("features"), list):
        return None
    return len(data["features"])


class SnapshotWriter:
    """Write the output artifact, never replacing good data with nothing.

    Usage:
        writer = SnapshotWriter('docs/charter.geojson')
        if not writer.write(features, metadata):
            logging.info("Previous snapshot kept")
    """

    def __init__(self, path: Union[str, Path] = OUTPUT.OUTPUT_PATH):
        self.path = Path(path)

    def _prior_has_data(self) -> bool:
        if not self.path.exists():
            return False
        prior_count = count_features(self.path)
        # An unreadable prior artifact can't be proven empty, so keep it
        return prior_count is None or prior_count > 0

    def write(
        self,
        features: List[Dict[str, Any]],
        metadata: Optional[Dict[str, Any]] = None
    ) -> bool:
        """
        Write features to the artifact location.

        Args:
            features: GeoJSON Feature dictionaries
            metadata: Optional run diagnostics

        Returns:
            True if the artifact was written, False if an empty result was
            refused to protect an existing snapshot

        Raises:
            OSError: If the artifact cannot be written
        """
        if not features and self._prior_has_data():
            logging.warning(
                f"No features resolved; keeping previous snapshot at {self.path}"
            )
            return False

        collection = ExportService.generate_feature_collection(features, metadata)
        write_json_atomic(collection, self.path)
        logging.info(f"Exported {len(features)} features to GEOJSON: {self.path}")
        return True
