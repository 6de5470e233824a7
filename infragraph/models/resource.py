from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class CloudResource:
    id: str                # canonical id, e.g. "aws_vpc.main" or "aws_instance.web[1]"
    type: str              # canonical (Terraform-style) type, e.g. "aws_subnet"
    name: str              # local name / CloudFormation logical id
    display_name: str = ""
    attributes: Dict[str, Any] = field(default_factory=dict)
    dependencies: List[str] = field(default_factory=list)
    provider: str = "aws"        # "aws", "azure", "gcp"
    region: Optional[str] = None
    tags: Dict[str, str] = field(default_factory=dict)
    sensitive_keys: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "type": self.type,
            "name": self.name,
            "displayName": self.display_name,
            "attributes": self.attributes,
            "dependencies": list(self.dependencies),
            "provider": self.provider,
            "tags": dict(self.tags),
        }
        if self.region is not None:
            data["region"] = self.region
        if self.sensitive_keys:
            data["sensitiveKeys"] = list(self.sensitive_keys)
        return data
