"""
ASGI entrypoint for deployments (e.g. Render).

The FastAPI app lives in `backend/saarthi/main.py` and uses imports like
`from saarthi.db ...`, which requires `backend/` to be on `PYTHONPATH`
(or the project installed with `pip install -e .`).

With this repo-root `main.py` a host can run:
  uvicorn main:app --host 0.0.0.0 --port $PORT
or simply:
  python main.py
"""

from __future__ import annotations

import sys
from pathlib import Path


_ROOT = Path(__file__).resolve().parent
_BACKEND_DIR = _ROOT / "backend"

# Ensure `import saarthi...` resolves to `backend/saarthi/...`
if str(_BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(_BACKEND_DIR))

from saarthi.main import app  # noqa: E402


if __name__ == "__main__":
    import uvicorn

    settings = app.state.ctx.settings
    uvicorn.run(app, host="0.0.0.0", port=settings.port, forwarded_allow_ips=settings.forwarded_allow_ips)
