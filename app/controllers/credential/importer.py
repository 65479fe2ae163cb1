import csv
from dataclasses import dataclass, field

from pydantic import ValidationError

from app.api.payloads.credentials import CredentialCreate
from app.exceptions import InvalidDataError

SEPARATOR = "----"
ALLOWED_CONTENT_TYPES = {"text/plain", "text/csv", "application/csv", "application/vnd.ms-excel"}


@dataclass
class ParsedFile:
    candidates: list[CredentialCreate] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


class CredentialFileParser:
    """
    Parses uploaded credential files.

    Each non-blank line is either ``address----password----client_id----refresh_token[----remark]``
    or the same fields separated by commas. A leading CSV header row is skipped.
    """

    @staticmethod
    def decode(content: bytes) -> str:
        try:
            return content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise InvalidDataError("Import file must be UTF-8 encoded text") from e

    @classmethod
    def parse(cls, text: str) -> ParsedFile:
        parsed = ParsedFile()
        for number, raw_line in enumerate(text.splitlines(), start=1):
            line = raw_line.strip()
            if not line:
                continue

            if SEPARATOR in line:
                fields = [value.strip() for value in line.split(SEPARATOR)]
                joiner = SEPARATOR
            elif "," in line:
                fields = [value.strip() for value in next(csv.reader([line]))]
                joiner = ","
            else:
                parsed.errors.append(f"line {number}: expected fields separated by '{SEPARATOR}' or ','")
                continue

            if number == 1 and fields[0].lower() in {"email", "email_address", "address"}:
                continue
            if len(fields) < 4:
                parsed.errors.append(f"line {number}: expected at least 4 fields, got {len(fields)}")
                continue

            email, password, client_id, refresh_token, *rest = fields
            try:
                candidate = CredentialCreate(
                    email_address=email,
                    password=password,
                    client_id=client_id,
                    refresh_token=refresh_token,
                    remark=joiner.join(rest),
                )
            except ValidationError as e:
                error = e.errors()[0]
                location = ".".join(str(part) for part in error["loc"])
                parsed.errors.append(f"line {number}: {location}: {error['msg']}")
                continue
            parsed.candidates.append(candidate)
        return parsed
