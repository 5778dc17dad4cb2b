from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel

from routeclash.ingest.attributes import RouteAttributeKind


class SourceLocationDTO(BaseModel):
    path: str
    line: int = 0
    column: int = 0


class RouteDeclarationDTO(BaseModel):
    action: str
    template: str
    verbs: List[str] = []
    attribute: Optional[RouteAttributeKind] = None
    location: Optional[SourceLocationDTO] = None


class RouteContainerDTO(BaseModel):
    id: str
    declarations: List[RouteDeclarationDTO] = []


class DeclarationPayloadDTO(BaseModel):
    version: int = 1
    name: str = ""
    containers: List[RouteContainerDTO] = []


class RouteFindingDTO(BaseModel):
    rule_id: str
    container: str
    action: str
    location: SourceLocationDTO
    display_text: str
    message: str


class AnalysisReportDTO(BaseModel):
    findings: List[RouteFindingDTO]
    template_errors: List[RouteFindingDTO] = []
    failed_containers: List[str] = []
    analyzed_containers: int = 0
    cancelled: bool = False
