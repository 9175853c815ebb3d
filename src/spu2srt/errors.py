from pathlib import Path


class Spu2SrtError(Exception):
    """Base class for all spu2srt errors."""


class ConfigurationError(Spu2SrtError):
    def __init__(self, detail: str, tip: str = "") -> None:
        message = (
            f"Invalid configuration.\n"
            f"  Cause: {detail}\n"
            f"  Check: Did you pass --mask with a one-hot bit string such as 0010?"
        )
        if tip:
            message += f"\n  Tip: {tip}"
        super().__init__(message)
        self.detail = detail


class IOFailure(Spu2SrtError):
    """Base class for unreadable inputs and unwritable outputs."""


class ImageReadError(IOFailure):
    def __init__(self, path: Path, detail: str) -> None:
        super().__init__(
            f"Cannot read subtitle image '{path.name}'.\n"
            f"  Cause: {detail}\n"
            f"  Check: Did the demux step finish? Is '{path.name}' a valid PNG?"
        )
        self.path = path
        self.detail = detail


class OcrOutputError(IOFailure):
    def __init__(self, path: Path, detail: str) -> None:
        super().__init__(
            f"Cannot open OCR output '{path.name}'.\n"
            f"  Cause: {detail}\n"
            f"  Check: Does your tesseract build support the 'hocr' config?\n"
            f"  Tip: Run `tesseract --list-langs` to verify the language data is installed."
        )
        self.path = path
        self.detail = detail


class OutputWriteError(IOFailure):
    def __init__(self, path: Path, detail: str) -> None:
        super().__init__(
            f"Cannot write output file '{path}'.\n"
            f"  Cause: {detail}\n"
            f"  Check: Does the target directory exist and is it writable?"
        )
        self.path = path
        self.detail = detail


class CacheWriteError(IOFailure):
    def __init__(self, path: Path, detail: str) -> None:
        super().__init__(
            f"Cannot update artifact ledger '{path}'.\n"
            f"  Cause: {detail}\n"
            f"  Check: Is the work directory writable and is there free space left?\n"
            f"  Tip: Deleting the ledger is safe; finished images are simply processed again."
        )
        self.path = path
        self.detail = detail


class ExternalToolError(Spu2SrtError):
    def __init__(self, tool: str, detail: str) -> None:
        super().__init__(
            f"External tool '{tool}' failed.\n"
            f"  Cause: {detail}\n"
            f"  Check: Is '{tool}' installed and in PATH (or set via SPU2SRT_{tool.upper()})?\n"
            f"  Tip: Re-running the same command resumes from the artifacts already produced."
        )
        self.tool = tool
        self.detail = detail


class TimingIndexError(Spu2SrtError):
    def __init__(self, path: Path, detail: str) -> None:
        super().__init__(
            f"Cannot parse timing index '{path.name}'.\n"
            f"  Cause: {detail}\n"
            f"  Check: Is the file spuunmux XML with a <stream> of <spu> entries?"
        )
        self.path = path
        self.detail = detail
