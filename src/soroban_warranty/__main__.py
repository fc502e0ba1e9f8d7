import uvicorn

from soroban_warranty.config import load_config


def main():
    cfg = load_config()
    uvicorn.run("soroban_warranty.app:build_app", factory=True, host=cfg.api_host, port=cfg.api_port, lifespan="on")


if __name__ == "__main__":
    main()
