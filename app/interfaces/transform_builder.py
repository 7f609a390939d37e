from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

from app.schemas.placement_schemas import BaseImageDescriptor, LogoSet, ResolvedPlacement

@dataclass
class MockupBuildRequest:
    """Everything a builder needs for one mockup URL"""
    base: BaseImageDescriptor
    logos: Optional[LogoSet]
    placements: List[ResolvedPlacement] = field(default_factory=list)
    max_width: Optional[int] = None
    max_height: Optional[int] = None
    product_id: str = ""
    # Plain aspect-fit only, no extent heuristics
    strict_fit: bool = False

class TransformBuilder(ABC):
    """Interface for mockup URL builders"""

    @abstractmethod
    def build(self, request: MockupBuildRequest) -> str:
        """
        Compile the placements of a request into a CDN transform URL.

        Returns:
            str: The transform URL, or the unmodified base URL when nothing
            could be placed
        """
        pass
