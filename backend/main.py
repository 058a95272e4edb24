from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from typing import List, Optional
from models import HealthResponse, ErrorResponse
from compilation import (
    CompilationRequest,
    CompilationResponse,
    CompilerConfigService,
    CompilerDispatcher,
    InstanceWorkspace,
    PluginRegistry,
    default_plugins,
)
from compilation.config import CompilerConfigModel
from compilation.settings import CORS_ORIGINS, PORT
import logging

"""
FastAPI server for the compiler explorer backend
Compiles snippets to assembly / bytecode listings or runs them
"""

VERSION = "0.1.0"

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the engine at startup; remove the instance workspace at shutdown"""
    config_service = CompilerConfigService()
    config_service.load()
    registry = PluginRegistry(default_plugins(config_service))
    workspace = InstanceWorkspace()

    app.state.config_service = config_service
    app.state.registry = registry
    app.state.workspace = workspace
    app.state.dispatcher = CompilerDispatcher(config_service, registry, workspace)
    try:
        yield
    finally:
        workspace.close()


app = FastAPI(
    title="Compiler Explorer Backend",
    description="Compiles source snippets to assembly or bytecode listings",
    version=VERSION,
    lifespan=lifespan
)

# CORS middleware to allow requests from the web editor
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials="*" not in CORS_ORIGINS,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


def _error_response(status: int, error: str, message: str, validation_errors: Optional[List[str]] = None) -> JSONResponse:
    body = ErrorResponse(status=status, error=error, message=message, validationErrors=validation_errors)
    return JSONResponse(status_code=status, content=body.model_dump(mode="json"))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        f"{'.'.join(str(part) for part in err['loc'] if part != 'body')}: {err['msg']}"
        for err in exc.errors()
    ]
    logger.info(f"Rejected {request.url.path}: {errors}")
    return _error_response(400, "Bad Request", "Validation failed", errors)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return _error_response(exc.status_code, "Not Found" if exc.status_code == 404 else "Bad Request", str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
    return _error_response(500, "Internal Server Error", "An unexpected error occurred")


@app.get("/health", response_model=HealthResponse)
def health_check():
    """
    Health check endpoint
    Returns the service status
    """
    return HealthResponse(status="ok", version=VERSION)


@app.get("/api/compiler/config", response_model=CompilerConfigModel)
def get_config(request: Request):
    """Languages and compilers available on this server"""
    return request.app.state.config_service.config


def _check_options_allowed(request: Request, body: CompilationRequest) -> None:
    language = request.app.state.config_service.get_language_config(body.language)
    if language is not None and body.compilerOptions and body.compilerOptions.strip() and not language.allowCustomArgs:
        raise HTTPException(
            status_code=400,
            detail=f"Custom compiler options are not allowed for language {language.id}"
        )


@app.post("/api/compiler/compile", response_model=CompilationResponse)
def compile_code(request: Request, body: CompilationRequest):
    """
    Compile a snippet and return its assembly / bytecode listing

    Example:
        POST /api/compiler/compile
        {"language": "cpp", "compilerId": "gcc", "code": "int main() {}", "compilerOptions": "-O2"}

        Response:
        {"assemblyOutput": "main: ...", "executionOutput": null, "error": null, "success": true}
    """
    _check_options_allowed(request, body)
    return request.app.state.dispatcher.compile(body)


@app.post("/api/compiler/execute", response_model=CompilationResponse)
def execute_code(request: Request, body: CompilationRequest):
    """Compile a snippet, run it and return its output"""
    _check_options_allowed(request, body)
    return request.app.state.dispatcher.execute(body)


@app.get("/api/compiler/languages", response_model=List[str])
def get_supported_languages(request: Request):
    return sorted(request.app.state.registry.get_supported_languages())


@app.get("/api/compiler/options/{language}", response_model=List[str])
def get_compiler_options(request: Request, language: str, compiler: Optional[str] = None):
    """Default option list for a language (and optionally one of its compilers)"""
    registry = request.app.state.registry
    if not registry.is_supported(language):
        raise HTTPException(status_code=404, detail=f"Unsupported language: {language}")
    return list(registry.get_plugin(language, compiler).default_options)


@app.get("/api/compiler/compilers/{language}", response_model=List[str])
def get_supported_compilers(request: Request, language: str):
    """Compiler ids configured for a language"""
    config = request.app.state.config_service.get_language_config(language)
    if config is None or not request.app.state.registry.is_supported(language):
        raise HTTPException(status_code=404, detail=f"Unsupported language: {language}")
    return [compiler.id for compiler in config.compilers]


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting compiler explorer backend on port {PORT}")
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=PORT,
        log_level="info",
        access_log=True
    )
