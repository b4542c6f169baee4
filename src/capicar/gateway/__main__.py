"""python -m capicar.gateway -- 以 uvicorn 启动 Gateway

监听 0.0.0.0:$PORT（默认 3000）。
"""

import os

import uvicorn


def main() -> None:
    port = int(os.environ.get("PORT", "3000"))
    uvicorn.run("capicar.gateway.main:app", host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
