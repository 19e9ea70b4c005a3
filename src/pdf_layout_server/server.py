"""FastAPI viewer-host API over the layout engine."""

import hashlib
import hmac
import os
import shutil
import tempfile
import threading
from collections import OrderedDict
from contextlib import asynccontextmanager, contextmanager
from pathlib import Path

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .layout import (
    DocumentInformationEntry,
    IndexNode,
    InvalidArgumentsError,
    InvalidPasswordError,
    LayoutDocument,
    Link,
    OperationFailedError,
    OutOfMemoryError,
    Rectangle,
    open_document,
)
from .logger import clear_context, logger, set_context

# Maximum file size for uploads (50MB)
MAX_UPLOAD_SIZE = 50 * 1024 * 1024

# Directory the API may open documents from
PDF_STORAGE_DIR = Path(os.getenv("PDF_STORAGE_DIR", "./data/pdfs"))

# Number of documents kept open between requests
MAX_OPEN_DOCUMENTS = int(os.getenv("MAX_OPEN_DOCUMENTS", "16"))


class PathValidationError(ValueError):
    """Raised when a file path fails security validation."""

    pass


def validate_file_path(
    file_path: Path, allowed_dirs: list[Path] | None = None
) -> Path:
    """Validate a file path to prevent directory traversal attacks.

    Args:
        file_path: Path to validate.
        allowed_dirs: Optional list of allowed directories. If provided,
            the resolved path must be within one of these directories.

    Returns:
        Resolved absolute path.

    Raises:
        PathValidationError: If path is outside allowed directories.
        FileNotFoundError: If the file does not exist.
    """
    resolved = file_path.resolve()

    if not resolved.exists():
        raise FileNotFoundError(f"File not found: {resolved}")

    if allowed_dirs is not None:
        allowed_resolved = [d.resolve() for d in allowed_dirs]
        if not any(
            resolved.is_relative_to(allowed_dir) for allowed_dir in allowed_resolved
        ):
            raise PathValidationError(
                f"Path {resolved} is not within allowed directories"
            )

    return resolved


# --- Document registry ---


def _password_digest(password: str | None) -> bytes:
    return hashlib.sha256((password or "").encode("utf-8")).digest()


class _OpenDocument:
    def __init__(self, document: LayoutDocument, password: str | None = None):
        self.document = document
        self.password_digest = _password_digest(password)
        # Pages are not synchronized internally; one request at a time per document
        self.lock = threading.Lock()
        # Requests holding the entry; an evicted entry is closed when this drops to 0
        self.users = 0
        self.retired = False


class DocumentRegistry:
    """Bounded cache of open documents keyed by resolved path."""

    def __init__(self, max_open: int = MAX_OPEN_DOCUMENTS):
        self.max_open = max_open
        self._documents: OrderedDict[str, _OpenDocument] = OrderedDict()
        self._lock = threading.Lock()

    @contextmanager
    def open(self, file_path: Path, password: str | None = None):
        """Yield the open document at ``file_path`` for exclusive use.

        The document stays open until the block exits, even if it is evicted
        or closed by another request in the meantime.

        Raises:
            InvalidPasswordError: If the document is encrypted and the
                password is missing or wrong, including on a cache hit.
        """
        entry = self._checkout(file_path, password)
        try:
            with entry.lock:
                yield entry.document
        finally:
            self._release(entry)

    def _checkout(self, file_path: Path, password: str | None) -> _OpenDocument:
        key = str(file_path)
        with self._lock:
            entry = self._documents.get(key)
            if entry is not None:
                self._check_password(entry, file_path, password)
                self._documents.move_to_end(key)
            else:
                entry = _OpenDocument(open_document(file_path, password), password)
                self._documents[key] = entry
                while len(self._documents) > self.max_open:
                    evicted_key, evicted = self._documents.popitem(last=False)
                    logger.info("evicting document", file_path=evicted_key)
                    self._retire(evicted)
            entry.users += 1
            return entry

    @staticmethod
    def _check_password(
        entry: _OpenDocument, file_path: Path, password: str | None
    ) -> None:
        if not entry.document.encrypted:
            return
        if hmac.compare_digest(entry.password_digest, _password_digest(password)):
            return
        # A different password may still be valid (owner vs user password)
        open_document(file_path, password).close()

    @staticmethod
    def _retire(entry: _OpenDocument) -> None:
        # Caller holds the registry lock
        entry.retired = True
        if entry.users == 0:
            entry.document.close()

    def _release(self, entry: _OpenDocument) -> None:
        with self._lock:
            entry.users -= 1
            if entry.retired and entry.users == 0:
                entry.document.close()

    def close(self, file_path: Path) -> bool:
        with self._lock:
            entry = self._documents.pop(str(file_path), None)
            if entry is None:
                return False
            self._retire(entry)
        return True

    def close_all(self) -> None:
        with self._lock:
            entries = list(self._documents.values())
            self._documents.clear()
            for entry in entries:
                self._retire(entry)

    def __len__(self) -> int:
        return len(self._documents)


registry = DocumentRegistry()


def _open_document(file_path: str, password: str | None = None):
    path = validate_file_path(PDF_STORAGE_DIR / file_path, [PDF_STORAGE_DIR])
    set_context(file_path=str(path))
    return registry.open(path, password)


# --- Request/Response Models ---


class DocumentRequest(BaseModel):
    file_path: str = Field(..., min_length=1)
    password: str | None = None


class PageRequest(DocumentRequest):
    page_index: int = Field(..., ge=0)


class SearchRequest(PageRequest):
    query: str = Field(..., min_length=1, max_length=1000)


class TextRequest(PageRequest):
    rectangle: Rectangle


class SearchResponse(BaseModel):
    page_index: int
    rectangles: list[Rectangle]


class TextResponse(BaseModel):
    page_index: int
    text: str | None


class LinksResponse(BaseModel):
    page_index: int
    links: list[Link]


class InformationResponse(BaseModel):
    entries: list[DocumentInformationEntry]


class UploadResponse(BaseModel):
    file_path: str
    page_count: int


class HealthResponse(BaseModel):
    status: str
    checks: dict[str, bool] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    code: str
    message: str


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    logger.info("starting server", storage_dir=str(PDF_STORAGE_DIR))
    PDF_STORAGE_DIR.mkdir(parents=True, exist_ok=True)

    yield

    registry.close_all()
    logger.info("server shutdown")


app = FastAPI(
    title="PDF Layout API",
    description="Text search, region text extraction and outline index for PDF pages",
    version="0.1.0",
    lifespan=lifespan,
)


# --- Exception Handlers ---


def _error(status_code: int, code: str, exc: Exception) -> JSONResponse:
    clear_context()
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(code=code, message=str(exc)).model_dump(),
    )


@app.exception_handler(InvalidArgumentsError)
async def invalid_arguments_handler(request, exc: InvalidArgumentsError):
    return _error(400, "INVALID_ARGUMENTS", exc)


@app.exception_handler(InvalidPasswordError)
async def invalid_password_handler(request, exc: InvalidPasswordError):
    return _error(401, "INVALID_PASSWORD", exc)


@app.exception_handler(PathValidationError)
async def path_validation_handler(request, exc: PathValidationError):
    return _error(403, "ACCESS_DENIED", exc)


@app.exception_handler(FileNotFoundError)
async def file_not_found_handler(request, exc: FileNotFoundError):
    return _error(404, "FILE_NOT_FOUND", exc)


@app.exception_handler(OperationFailedError)
async def operation_failed_handler(request, exc: OperationFailedError):
    logger.warn("operation failed", error=str(exc))
    return _error(422, "OPERATION_FAILED", exc)


@app.exception_handler(OutOfMemoryError)
async def out_of_memory_handler(request, exc: OutOfMemoryError):
    logger.error("out of memory", error=str(exc))
    return _error(503, "OUT_OF_MEMORY", exc)


# --- Health Endpoints ---


@app.get("/health", response_model=HealthResponse)
def health():
    """Liveness check."""
    return HealthResponse(status="healthy")


@app.get("/ready", response_model=HealthResponse)
def ready():
    """Readiness check - verifies the storage directory is usable."""
    checks = {"storage": PDF_STORAGE_DIR.is_dir()}
    status = "healthy" if all(checks.values()) else "unhealthy"
    return HealthResponse(status=status, checks=checks)


# --- Document Endpoints ---


@app.post("/api/v1/documents", response_model=UploadResponse)
def upload_document(file: UploadFile = File(...)):
    """Store an uploaded PDF so later requests can open it."""
    file_name = Path(file.filename or "upload.pdf").name
    if not file_name.lower().endswith(".pdf"):
        raise HTTPException(status_code=400, detail="Only PDF files are supported")

    with tempfile.NamedTemporaryFile(delete=False, suffix=".pdf") as tmp:
        tmp_path = Path(tmp.name)
        shutil.copyfileobj(file.file, tmp)

    try:
        if tmp_path.stat().st_size > MAX_UPLOAD_SIZE:
            raise HTTPException(
                status_code=400,
                detail=f"File too large. Maximum size is {MAX_UPLOAD_SIZE // (1024 * 1024)}MB",
            )

        with open(tmp_path, "rb") as f:
            header = f.read(5)
        if header != b"%PDF-":
            raise HTTPException(
                status_code=400,
                detail="Invalid PDF file. File does not have valid PDF header.",
            )

        PDF_STORAGE_DIR.mkdir(parents=True, exist_ok=True)
        destination = PDF_STORAGE_DIR / file_name
        # Readers of a replaced file keep the old inode until they finish
        staging = destination.with_name(f".{file_name}.part")
        shutil.copy2(tmp_path, staging)
        os.replace(staging, destination)
        registry.close(destination.resolve())
    finally:
        tmp_path.unlink(missing_ok=True)

    with _open_document(file_name) as document:
        page_count = document.page_count
    logger.info("document uploaded", page_count=page_count)
    clear_context()
    return UploadResponse(file_path=file_name, page_count=page_count)


@app.post("/api/v1/documents/index", response_model=IndexNode)
def document_index(request: DocumentRequest):
    """Return the document outline as an index tree."""
    with _open_document(request.file_path, request.password) as document:
        root = document.index()
    clear_context()
    return root


@app.post("/api/v1/documents/information", response_model=InformationResponse)
def document_information(request: DocumentRequest):
    """Return the document information entries."""
    with _open_document(request.file_path, request.password) as document:
        entries = document.information()
    clear_context()
    return InformationResponse(entries=entries)


@app.post("/api/v1/documents/close")
def close_document(request: DocumentRequest):
    """Close a document and drop its cached page text."""
    path = validate_file_path(PDF_STORAGE_DIR / request.file_path, [PDF_STORAGE_DIR])
    closed = registry.close(path)
    return {"closed": closed}


# --- Page Endpoints ---


@app.post("/api/v1/pages/search", response_model=SearchResponse)
def search_page(request: SearchRequest):
    """Find every occurrence of the query on a page."""
    with _open_document(request.file_path, request.password) as document:
        rectangles = document.page(request.page_index).search(request.query)
    logger.info(
        "search complete", page_index=request.page_index, matches=len(rectangles)
    )
    clear_context()
    return SearchResponse(page_index=request.page_index, rectangles=rectangles)


@app.post("/api/v1/pages/text", response_model=TextResponse)
def page_text(request: TextRequest):
    """Return the text inside a rectangle of a page."""
    with _open_document(request.file_path, request.password) as document:
        text = document.page(request.page_index).get_text(request.rectangle)
    clear_context()
    return TextResponse(page_index=request.page_index, text=text)


@app.post("/api/v1/pages/links", response_model=LinksResponse)
def page_links(request: PageRequest):
    """Return the resolved links of a page."""
    with _open_document(request.file_path, request.password) as document:
        links = document.page(request.page_index).links()
    clear_context()
    return LinksResponse(page_index=request.page_index, links=links)
