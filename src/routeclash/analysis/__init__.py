from routeclash.analysis.ambiguity_grouper import (
    AmbiguityClass,
    ResolvedDeclaration,
    group_and_flag,
    verbs_overlap,
)
from routeclash.analysis.diagnostics import (
    AMBIGUOUS_ACTION_ROUTE,
    INVALID_ROUTE_TEMPLATE,
    RouteFinding,
)
from routeclash.analysis.model import (
    AnalysisUnit,
    RouteContainer,
    RouteDeclaration,
    SourceLocation,
)
from routeclash.analysis.pattern_comparer import equivalent, pattern_hash
from routeclash.analysis.route_analysis import (
    AnalysisReport,
    ContainerReport,
    analyze_container,
    run_analysis,
)
from routeclash.analysis.route_template import (
    LiteralSegment,
    ParameterSegment,
    TemplateSyntaxError,
    TemplateTree,
    parse_template,
)
from routeclash.analysis.usage_cache import RouteUsageCache

__all__ = [
    "AMBIGUOUS_ACTION_ROUTE",
    "INVALID_ROUTE_TEMPLATE",
    "AmbiguityClass",
    "AnalysisReport",
    "AnalysisUnit",
    "ContainerReport",
    "LiteralSegment",
    "ParameterSegment",
    "ResolvedDeclaration",
    "RouteContainer",
    "RouteDeclaration",
    "RouteFinding",
    "RouteUsageCache",
    "SourceLocation",
    "TemplateSyntaxError",
    "TemplateTree",
    "analyze_container",
    "equivalent",
    "group_and_flag",
    "parse_template",
    "pattern_hash",
    "run_analysis",
    "verbs_overlap",
]
