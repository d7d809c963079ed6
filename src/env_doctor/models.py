"""Data models for env-doctor."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Literal

Severity = Literal["error", "warning", "info"]
AccessPattern = Literal["direct", "bracket", "destructure", "dynamic"]
InferredType = Literal["string", "number", "boolean", "json", "array"]
VariableStatus = Literal["set", "empty", "missing", "invalid"]
RowStatus = Literal["ok", "error", "warning", "info"]


@dataclass(frozen=True)
class DeclaredVariable:
    """A name/value pair parsed from a declaration file."""

    name: str
    value: str
    line: int
    file: str
    is_secret: bool = False
    inferred_type: InferredType | None = None
    raw: str | None = None


@dataclass(frozen=True)
class Usage:
    """One syntactic reference to an environment variable in source code."""

    name: str
    file: str
    line: int
    column: int
    access_pattern: AccessPattern
    inferred_type: InferredType | None = None
    is_client_side: bool = False


@dataclass(frozen=True)
class SourceLocation:
    file: str
    line: int
    column: int | None = None

    def __str__(self) -> str:
        if self.column is not None:
            return f"{self.file}:{self.line}:{self.column}"
        return f"{self.file}:{self.line}"


@dataclass
class Issue:
    """A detected configuration defect."""

    type: str
    severity: Severity
    variable: str
    message: str
    location: SourceLocation | None = None
    fix: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.type,
            "severity": self.severity,
            "variable": self.variable,
            "message": self.message,
        }
        if self.location is not None:
            data["location"] = {
                k: v for k, v in asdict(self.location).items() if v is not None
            }
        if self.fix is not None:
            data["fix"] = self.fix
        if self.context:
            data["context"] = dict(self.context)
        return data


@dataclass(frozen=True)
class ParseError:
    line: int
    message: str
    file: str | None = None


@dataclass
class ParseResult:
    """Output of the declaration parser."""

    variables: list[DeclaredVariable] = field(default_factory=list)
    errors: list[ParseError] = field(default_factory=list)

    def get(self, name: str) -> DeclaredVariable | None:
        for variable in self.variables:
            if variable.name == name:
                return variable
        return None


@dataclass(frozen=True)
class ScanError:
    file: str
    message: str


@dataclass
class ScanResult:
    """Output of the usage scanner."""

    usages: list[Usage] = field(default_factory=list)
    errors: list[ScanError] = field(default_factory=list)
    files_scanned: int = 0


@dataclass
class SyncCheckResult:
    issues: list[Issue]
    missing_from_template: list[str]
    missing_from_env: list[str]
    in_sync: bool


@dataclass
class EnvironmentVariableInfo:
    """State of one variable in one environment."""

    status: VariableStatus
    valid: bool
    value: str | None = None
    file: str | None = None
    line: int | None = None
    error: str | None = None
    is_secret: bool = False


@dataclass
class MatrixIssue:
    type: str
    severity: Severity
    variable: str
    environments: list[str]
    message: str
    fix: str | None = None


@dataclass
class MatrixRow:
    """One variable across all compared environments."""

    name: str
    environments: dict[str, EnvironmentVariableInfo] = field(default_factory=dict)
    status: RowStatus = "ok"
    issues: list[MatrixIssue] = field(default_factory=list)


@dataclass
class ParsedEnvironment:
    name: str
    files: list[str]
    variables: list[DeclaredVariable]
    errors: list[ParseError] = field(default_factory=list)
    description: str | None = None

    def get(self, name: str) -> DeclaredVariable | None:
        for variable in self.variables:
            if variable.name == name:
                return variable
        return None


@dataclass
class EnvironmentSummary:
    total: int = 0
    missing: int = 0
    invalid: int = 0


@dataclass
class MatrixSummary:
    total_variables: int
    consistent_variables: int
    error_count: int
    warning_count: int
    info_count: int
    per_environment: dict[str, EnvironmentSummary]


@dataclass
class MatrixResult:
    environments: list[str]
    environment_info: dict[str, dict[str, Any]]
    rows: list[MatrixRow]
    issues: list[MatrixIssue]
    summary: MatrixSummary
    timestamp: str


@dataclass
class AnalysisStats:
    files_scanned: int
    declaration_files_parsed: int
    duration_ms: int
    error_count: int
    warning_count: int
    info_count: int


@dataclass
class AnalysisResult:
    """Everything produced by one full project analysis."""

    issues: list[Issue]
    declared: list[DeclaredVariable]
    usages: list[Usage]
    framework: str
    stats: AnalysisStats
    template: list[DeclaredVariable] | None = None
    parse_errors: list[ParseError] = field(default_factory=list)
    scan_errors: list[ScanError] = field(default_factory=list)
