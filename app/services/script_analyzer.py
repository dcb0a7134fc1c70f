"""
app/services/script_analyzer.py

Static analysis of Apps Script source files.

Pure functions only: no I/O, no database. Given the same files, the same
analysis is produced every time.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from urllib.parse import urlsplit

from app.domain.script_sync import (
    ApiUsage,
    ConnectedFileInfo,
    FunctionInfo,
    ScriptAnalysis,
    ScriptSourceFile,
    TriggerInfo,
)

_FUNCTION_PATTERN = re.compile(r"\bfunction\s+(\w+)\s*\(([^)]*)\)\s*\{")
_JSDOC_BEFORE_PATTERN = re.compile(r"/\*\*((?:(?!\*/)[\s\S])*)\*/\s*$")
_TIME_TRIGGER_PATTERN = re.compile(
    r"ScriptApp\.newTrigger\s*\(\s*['\"`](\w+)['\"`]\s*\)[\s\S]*?\.timeBased\(\)[\s\S]*?"
    r"\.(everyHours|everyMinutes|everyDays|everyWeeks|atHour|onWeekDay)\s*\(\s*(\d+)?"
)

_FETCH_URL_PATTERN = re.compile(r"UrlFetchApp\.fetch(?:All)?\s*\(\s*['\"`]([^'\"`]+)['\"`]")
_URL_VARIABLE_PATTERN = re.compile(r"(?:const|let|var)\s+\w*[Uu]rl\w*\s*=\s*['\"`]([^'\"`]+)['\"`]")
_CONFIG_URL_PATTERN = re.compile(
    r"(?:BASE_URL|API_URL|ENDPOINT|baseUrl|apiUrl|endpoint|api_url|base_url)\s*[:=]\s*['\"`](https?://[^'\"`]+)['\"`]",
    re.IGNORECASE,
)
_GENERIC_URL_PATTERN = re.compile(
    r"['\"`](https?://(?!(?:docs|drive|sheets|script|www)\.google\.com)"
    r"[a-zA-Z0-9][a-zA-Z0-9\-._]*\.[a-zA-Z]{2,}[/a-zA-Z0-9\-._~:?#\[\]@!$&()*+,;=]*)['\"`]"
)
_STATIC_ASSET_PATTERN = re.compile(r"\.(png|jpg|jpeg|gif|svg|css|js|ico|woff|ttf)$", re.IGNORECASE)

_HTTP_METHODS = ("POST", "PUT", "DELETE", "PATCH")

# (substring, description); first match wins
_API_DESCRIPTIONS: tuple[tuple[str, str], ...] = (
    ("slack", "Slack API"),
    ("salesforce", "Salesforce API"),
    ("workable", "Workable API"),
    ("jisr", "Jisr HR API"),
    ("attendance", "Jisr HR API"),
    ("webhook", "Webhook endpoint"),
    ("notion", "Notion API"),
    ("airtable", "Airtable API"),
    ("hubspot", "HubSpot API"),
    ("stripe", "Stripe API"),
    ("twilio", "Twilio API"),
    ("sendgrid", "SendGrid API"),
    ("api", "External API"),
)

_FILE_ID = r"([a-zA-Z0-9_-]+)"
# (pattern, file type, extracted from, url template)
_CONNECTED_FILE_PATTERNS: tuple[tuple[re.Pattern[str], str, str, str], ...] = (
    (
        re.compile(r"SpreadsheetApp\.openById\s*\(\s*['\"`]" + _FILE_ID + r"['\"`]\s*\)"),
        "spreadsheet",
        "openById",
        "https://docs.google.com/spreadsheets/d/{}",
    ),
    (
        re.compile(r"DriveApp\.getFileById\s*\(\s*['\"`]" + _FILE_ID + r"['\"`]\s*\)"),
        "drive",
        "getFileById",
        "https://drive.google.com/file/d/{}",
    ),
    (
        re.compile(r"DocumentApp\.openById\s*\(\s*['\"`]" + _FILE_ID + r"['\"`]\s*\)"),
        "document",
        "openById",
        "https://docs.google.com/document/d/{}",
    ),
)
_OPEN_BY_URL_PATTERN = re.compile(r"SpreadsheetApp\.openByUrl\s*\(\s*['\"`]([^'\"`]+)['\"`]\s*\)")
_ACTIVE_SPREADSHEET_PATTERN = re.compile(r"SpreadsheetApp\.getActiveSpreadsheet\s*\(\s*\)")
_URL_FILE_ID_PATTERNS = (
    re.compile(r"/d/([a-zA-Z0-9_-]+)"),
    re.compile(r"id=([a-zA-Z0-9_-]+)"),
)
_READ_CALL_PATTERN = re.compile(r"\.getValue|\.getValues|\.getRange|\.getDataRange|\.getSheets|\.getName")
_WRITE_CALL_PATTERN = re.compile(
    r"\.setValue|\.setValues|\.appendRow|\.insertRow|\.deleteRow|\.clear|\.setBackground"
)

ACTIVE_FILE_ID = "active"
ACTIVE_FILE_NAME = "Container Spreadsheet"

_GOOGLE_SERVICE_PATTERNS: tuple[tuple[str, str], ...] = (
    ("SpreadsheetApp", "Sheets"),
    ("DriveApp", "Drive"),
    ("GmailApp", "Gmail"),
    ("MailApp", "Mail"),
    ("CalendarApp", "Calendar"),
    ("DocumentApp", "Docs"),
    ("SlidesApp", "Slides"),
    ("FormApp", "Forms"),
    ("ContactsApp", "Contacts"),
    ("UrlFetchApp", "URL Fetch"),
    ("CacheService", "Cache"),
    ("PropertiesService", "Properties"),
    ("ScriptApp", "Script"),
    ("HtmlService", "HTML"),
    ("ContentService", "Content"),
    ("LockService", "Lock"),
    ("Logger", "Logger"),
    ("Utilities", "Utilities"),
    ("CardService", "Cards"),
    ("Charts", "Charts"),
)

# function name -> (trigger type, source event)
_SIMPLE_TRIGGERS: dict[str, tuple[str, str]] = {
    "onOpen": ("on-open", "spreadsheet"),
    "onEdit": ("on-edit", "spreadsheet"),
    "onInstall": ("on-install", "addon"),
    "onSelectionChange": ("on-selection-change", "spreadsheet"),
    "onChange": ("on-change", "spreadsheet"),
    "onFormSubmit": ("on-form-submit", "form"),
    "doGet": ("web-app", "http-get"),
    "doPost": ("web-app", "http-post"),
}

_LOW_COMPLEXITY_LIMIT = 100
_MEDIUM_COMPLEXITY_LIMIT = 500


def analyze_script(script_id: str, name: str, files: Sequence[ScriptSourceFile]) -> ScriptAnalysis:
    """
    Analyze every non-manifest file of one script project.
    """

    code_files = [item for item in files if item.file_type != "JSON"]
    all_code = "\n".join(item.source for item in code_files)

    functions = extract_functions(code_files)
    google_services = extract_google_services(all_code)
    triggers = extract_triggers(all_code)
    lines_of_code = len(all_code.split("\n")) if code_files else 0

    connected_files: dict[str, ConnectedFileInfo] = {}
    for code_file in code_files:
        for connected in extract_connected_files(code_file.source, code_file.name):
            connected_files.setdefault(connected.file_id, connected)

    return ScriptAnalysis(
        script_id=script_id,
        name=name,
        functions=functions,
        google_services=google_services,
        triggers=triggers,
        lines_of_code=lines_of_code,
        complexity=classify_complexity(lines_of_code),
        summary=build_summary(google_services, triggers),
        workflow_steps=build_workflow_steps(functions, google_services, triggers),
        external_apis=extract_external_apis(all_code),
        connected_files=list(connected_files.values()),
    )


def classify_complexity(lines_of_code: int) -> str:
    if lines_of_code < _LOW_COMPLEXITY_LIMIT:
        return "low"
    if lines_of_code < _MEDIUM_COMPLEXITY_LIMIT:
        return "medium"
    return "high"


def extract_functions(files: Iterable[ScriptSourceFile]) -> list[FunctionInfo]:
    """
    Top-level ``function name(...) {`` declarations, first declaration wins.
    """

    functions: list[FunctionInfo] = []
    seen: set[str] = set()
    for source_file in files:
        code = source_file.source
        for match in _FUNCTION_PATTERN.finditer(code):
            name = match.group(1)
            if name in seen:
                continue
            seen.add(name)
            params = [param.strip() for param in match.group(2).split(",") if param.strip()]
            functions.append(
                FunctionInfo(
                    name=name,
                    description=_jsdoc_description(code[: match.start()]) or f"Function {name}",
                    parameters=params,
                    is_public=not name.startswith("_"),
                    line_count=_function_line_count(code, match.start(), match.end()),
                    file_name=source_file.name,
                )
            )
    return functions


def extract_google_services(code: str) -> list[str]:
    return [label for token, label in _GOOGLE_SERVICE_PATTERNS if token in code]


def extract_triggers(code: str) -> list[TriggerInfo]:
    triggers: list[TriggerInfo] = []
    seen: set[tuple[str, str]] = set()

    for match in _TIME_TRIGGER_PATTERN.finditer(code):
        function_name, schedule_type, raw_value = match.group(1), match.group(2), match.group(3)
        key = (function_name, "time-driven")
        if key in seen:
            continue
        seen.add(key)
        schedule, description = _describe_schedule(schedule_type, raw_value)
        triggers.append(
            TriggerInfo(
                trigger_type="time-driven",
                function_name=function_name,
                schedule=schedule,
                schedule_description=description,
                source_event="clock",
                is_programmatic=True,
            )
        )

    for match in _FUNCTION_PATTERN.finditer(code):
        function_name = match.group(1)
        if function_name not in _SIMPLE_TRIGGERS:
            continue
        trigger_type, source_event = _SIMPLE_TRIGGERS[function_name]
        key = (function_name, trigger_type)
        if key in seen:
            continue
        seen.add(key)
        triggers.append(
            TriggerInfo(
                trigger_type=trigger_type,
                function_name=function_name,
                source_event=source_event,
            )
        )

    return triggers


def extract_external_apis(code: str) -> list[ApiUsage]:
    """
    External HTTP endpoints referenced by the code, keyed by (url, method).

    ``UrlFetchApp.fetch`` calls are counted per occurrence; URL variables,
    config constants and other quoted non-Google URLs not already fetched are
    recorded once as GET.
    """

    found: dict[tuple[str, str], ApiUsage] = {}

    for match in _FETCH_URL_PATTERN.finditer(code):
        raw_url = match.group(1)
        usage = _api_usage(raw_url, _detect_http_method(code, match.start()), code, match.start())
        key = (usage.url, usage.method)
        existing = found.get(key)
        if existing is None:
            found[key] = usage
        else:
            found[key] = ApiUsage(
                url=existing.url,
                base_url=existing.base_url,
                method=existing.method,
                description=existing.description,
                count=existing.count + 1,
                code_location=existing.code_location,
            )

    candidates: list[tuple[str, int]] = []
    candidates.extend(
        (match.group(1), match.start())
        for match in _URL_VARIABLE_PATTERN.finditer(code)
        if match.group(1).startswith("http")
    )
    candidates.extend((match.group(1), match.start()) for match in _CONFIG_URL_PATTERN.finditer(code))
    candidates.extend(
        (match.group(1), match.start())
        for match in _GENERIC_URL_PATTERN.finditer(code)
        if not _STATIC_ASSET_PATTERN.search(match.group(1))
    )
    fetched_urls = {url for url, _ in found}
    for raw_url, position in candidates:
        usage = _api_usage(raw_url, "GET", code, position)
        if usage.url in fetched_urls:
            continue
        found.setdefault((usage.url, usage.method), usage)

    return list(found.values())


def extract_connected_files(code: str, file_name: str) -> list[ConnectedFileInfo]:
    """
    Spreadsheets, documents and Drive files opened by id or URL in one
    source file, plus the container spreadsheet for bound scripts.
    """

    files: list[ConnectedFileInfo] = []
    seen: set[str] = set()

    def add(file_id: str, file_type: str, extracted_from: str, position: int, file_url: str | None) -> None:
        if file_id in seen:
            return
        seen.add(file_id)
        files.append(
            ConnectedFileInfo(
                file_id=file_id,
                file_type=file_type,
                access_type=_detect_access_type(code, position),
                extracted_from=extracted_from,
                file_url=file_url,
                code_location=f"{file_name}:{_line_number(code, position)}",
            )
        )

    for pattern, file_type, extracted_from, url_template in _CONNECTED_FILE_PATTERNS:
        for match in pattern.finditer(code):
            add(match.group(1), file_type, extracted_from, match.start(), url_template.format(match.group(1)))

    for match in _OPEN_BY_URL_PATTERN.finditer(code):
        file_id = _file_id_from_url(match.group(1))
        if file_id:
            add(file_id, "spreadsheet", "openByUrl", match.start(), match.group(1))

    active = _ACTIVE_SPREADSHEET_PATTERN.search(code)
    if active is not None and ACTIVE_FILE_ID not in seen:
        seen.add(ACTIVE_FILE_ID)
        files.append(
            ConnectedFileInfo(
                file_id=ACTIVE_FILE_ID,
                file_type="spreadsheet",
                access_type="read-write",
                extracted_from="active",
                file_name=ACTIVE_FILE_NAME,
                code_location=f"{file_name}:{_line_number(code, active.start())}",
            )
        )

    return files


def build_summary(google_services: Sequence[str], triggers: Sequence[TriggerInfo]) -> str:
    """
    One plain-language sentence: how the script runs and what it does.
    """

    actions: list[str] = []
    if "URL Fetch" in google_services:
        actions.append("calls external APIs")
    if "Sheets" in google_services:
        actions.append("reads/writes spreadsheet data")
    if "Gmail" in google_services or "Mail" in google_services:
        actions.append("sends emails")
    if "Drive" in google_services:
        actions.append("manages Drive files")
    if "Calendar" in google_services:
        actions.append("manages calendar events")

    action_phrase = ", ".join(actions[:3]) if actions else "automates spreadsheet operations"
    return f"{_trigger_phrase(triggers)} and {action_phrase}."


def build_workflow_steps(
    functions: Sequence[FunctionInfo],
    google_services: Sequence[str],
    triggers: Sequence[TriggerInfo],
) -> list[str]:
    steps: list[str] = []

    if not triggers:
        steps.append("Run manually by user")
    else:
        first = triggers[0]
        if first.trigger_type == "time-driven":
            steps.append(f"Runs automatically {first.schedule or 'on schedule'}")
        elif first.trigger_type == "on-edit":
            steps.append("Triggered when spreadsheet is edited")
        elif first.trigger_type == "on-open":
            steps.append("Runs when document is opened")
        elif first.trigger_type == "on-form-submit":
            steps.append("Triggered on form submission")
        elif first.trigger_type == "web-app":
            steps.append("Handles web app requests")
        else:
            steps.append("Runs manually or via trigger")

    sources = [service for service in ("Sheets", "Drive", "Docs", "Calendar") if service in google_services]
    if "URL Fetch" in google_services:
        sources.append("external APIs")
    if sources:
        steps.append(f"Reads data from {', '.join(sources)}")

    public_functions = [item for item in functions if item.is_public]
    if public_functions:
        steps.append(f"Processes data across {len(public_functions)} public functions")

    outputs: list[str] = []
    if "Gmail" in google_services or "Mail" in google_services:
        outputs.append("sends email notifications")
    if "Sheets" in google_services:
        outputs.append("writes results to spreadsheets")
    if outputs:
        step = "; ".join(outputs)
        steps.append(step[0].upper() + step[1:])

    return steps


def _trigger_phrase(triggers: Sequence[TriggerInfo]) -> str:
    if not triggers:
        return "This script runs manually"
    first = triggers[0]
    if first.trigger_type == "time-driven":
        return f"This script runs automatically {first.schedule or 'on a schedule'}"
    if first.trigger_type == "on-edit":
        return "This script runs when a spreadsheet is edited"
    if first.trigger_type == "on-open":
        return "This script runs when a document is opened"
    if first.trigger_type == "on-form-submit":
        return "This script runs when a form is submitted"
    if first.trigger_type == "web-app":
        return "This script runs as a web app"
    return "This script runs via a trigger"


def _describe_schedule(schedule_type: str, raw_value: str | None) -> tuple[str, str]:
    value = int(raw_value) if raw_value else 1
    if schedule_type == "everyHours":
        unit = "hour" if value == 1 else "hours"
        return f"every {value} {unit}", f"Runs every {value} {unit}"
    if schedule_type == "everyMinutes":
        unit = "minute" if value == 1 else "minutes"
        return f"every {value} {unit}", f"Runs every {value} {unit}"
    if schedule_type == "everyDays":
        return "daily", "Runs daily"
    if schedule_type == "everyWeeks":
        return "weekly", "Runs weekly"
    if schedule_type == "atHour":
        return f"at {value:02d}:00", f"Runs at {value:02d}:00"
    return "scheduled", "Runs on a weekly day schedule"


def _jsdoc_description(code_before: str) -> str:
    match = _JSDOC_BEFORE_PATTERN.search(code_before)
    if match is None:
        return ""
    lines: list[str] = []
    for raw_line in match.group(1).splitlines():
        line = raw_line.strip().lstrip("*").strip()
        if not line or line.startswith("@"):
            continue
        lines.append(line)
    return " ".join(lines)


def _function_line_count(code: str, start: int, body_start: int) -> int:
    depth = 1
    position = body_start
    while depth > 0 and position < len(code):
        char = code[position]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        position += 1
    return code[start:position].count("\n") + 1


def _line_number(code: str, position: int) -> int:
    return code.count("\n", 0, position) + 1


def _detect_access_type(code: str, position: int) -> str:
    context = code[position : position + 500]
    reads = _READ_CALL_PATTERN.search(context) is not None
    writes = _WRITE_CALL_PATTERN.search(context) is not None
    if reads and writes:
        return "read-write"
    if writes:
        return "write"
    return "read"


def _detect_http_method(code: str, position: int) -> str:
    context = code[max(0, position - 200) : position + 200]
    for method in _HTTP_METHODS:
        if f"'method': '{method}'" in context or f'"method": "{method}"' in context:
            return method
    return "GET"


def _file_id_from_url(url: str) -> str | None:
    for pattern in _URL_FILE_ID_PATTERNS:
        match = pattern.search(url)
        if match is not None:
            return match.group(1)
    return None


def _api_usage(raw_url: str, method: str, code: str, position: int) -> ApiUsage:
    url, base_url = _normalize_api_url(raw_url)
    return ApiUsage(
        url=url,
        base_url=base_url,
        method=method.upper(),
        description=_describe_api(raw_url),
        code_location=f"line {_line_number(code, position)}",
    )


def _normalize_api_url(raw_url: str) -> tuple[str, str]:
    """
    (url trimmed to two path segments, scheme://host) with a lowercase
    scheme and host and no trailing slash.
    """

    parts = urlsplit(raw_url)
    if not parts.scheme or not parts.netloc:
        fallback = raw_url[:50].lower().rstrip("/")
        return fallback, fallback
    origin = f"{parts.scheme.lower()}://{parts.netloc.lower()}"
    path = "/".join(parts.path.split("/")[:3]).rstrip("/")
    return f"{origin}{path or '/'}", origin


def _describe_api(url: str) -> str:
    lowered = url.lower()
    for needle, description in _API_DESCRIPTIONS:
        if needle in lowered:
            return description
    return "HTTP request"
