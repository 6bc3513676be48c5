import json
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .config import get_settings
from .executor import CodeExecutor
from .languages import Language
from .schemas import ExecutionRequest

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(title='Code Runner')
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.origins_list,
    allow_methods=['GET', 'POST', 'OPTIONS'],
    allow_headers=['Content-Type'],
)

executor = CodeExecutor(settings)


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={'success': False, 'output': '', 'error': message})


@app.get('/health')
async def health():
    return {'status': 'healthy', 'backend': settings.backend, 'languages': Language.ids()}


@app.post('/execute')
@app.post('/api/execute')
async def run_code(request: Request):
    try:
        body = json.loads(await request.body())
    except ValueError:
        return _error('Invalid JSON body', 400)

    if not isinstance(body, dict) or not body.get('language') or not body.get('code'):
        return _error('Missing language or code', 400)

    if body['language'] not in Language.ids():
        return _error('Unsupported language for server execution', 400)

    try:
        req = ExecutionRequest.model_validate(body)
    except ValidationError:
        return _error('Invalid request body', 400)

    try:
        res = await executor.execute(req)
    except Exception as e:
        logger.exception('execution failed')
        return _error(str(e) or 'Unknown error', 500)
    return JSONResponse(status_code=200 if res.success else 400, content=res.to_response())


if __name__ == '__main__':
    import uvicorn

    uvicorn.run(app, host='0.0.0.0', port=3000)
