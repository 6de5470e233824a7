"""
JSON graph report generator.
"""
import json
from collections import Counter
from datetime import datetime, timezone

from infragraph import __version__
from infragraph.models.graph import GraphResult


def build_report(result: GraphResult, source_path: str, provider_id: str) -> str:
    report = {
        "meta": {
            "generated": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "source": source_path,
            "provider": provider_id,
            "tool": "infragraph",
            "version": __version__,
        },
        "summary": dict(Counter(n.render_category for n in result.nodes)),
    }
    report.update(result.to_dict())
    return json.dumps(report, indent=2)
