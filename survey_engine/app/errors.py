from __future__ import annotations


class AppError(Exception):
    # Base class for domain errors (intended, meaningful failures).
    pass


class WorkbookReadError(AppError):
    # Raised when the uploaded buffer cannot be turned into a grid (unreadable file, missing sheet, no rows).
    pass


class UploadTooLarge(AppError):
    # Raised when an upload exceeds the configured size ceiling.
    pass


class UnsupportedAnalysisType(AppError):
    # Raised when a caller asks for an analysis kind the analyzer does not implement.
    def __init__(self, analysis_type: str):
        super().__init__(f"Unsupported analysis type: {analysis_type}")
        self.analysis_type = analysis_type


class AnalyzerNotReady(AppError):
    # Raised when results are requested before a file has been processed successfully.
    pass
