from __future__ import annotations

import argparse
import asyncio
import base64
import json
import sys
from pathlib import Path
from typing import Any, Sequence

from .config import RuntimeSecrets, config_sha256, load_config, resolve_runtime_secrets
from .config_schema import AppConfig
from .details import GeneratedPosts
from .encoder import encode_image
from .errors import ConfigError, EncodingError, GenerationError, InputError, LLMError
from .llm import OpenAIPostBackend
from .orchestrator import PostOrchestrator
from .run_log import RunLogger
from .session import DraftSession

_DEFAULT_LOG_NAME = "mb_post.log"


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--config",
        required=True,
        help="Path to YAML config file.",
    )
    p.add_argument(
        "--offline",
        action="store_true",
        help="Run without network calls using a stub backend.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mb_post")

    subparsers = parser.add_subparsers(dest="command", required=True)

    gen = subparsers.add_parser(
        "generate",
        help="Generate three captions and a square visual post from product photos.",
    )
    _add_common(gen)
    gen.add_argument(
        "--image",
        dest="images",
        action="append",
        default=[],
        help="Product photo. Repeat for several photos; order is preserved.",
    )
    gen.add_argument("--logo", default=None, help="Optional brand logo image.")
    gen.add_argument("--name", default="", help="Product name.")
    gen.add_argument("--price", default="", help="Price, without currency symbol.")
    gen.add_argument("--audience", default="", help="Target audience for the captions.")
    gen.add_argument("--promotion", default="", help="Promotion or highlight text.")
    gen.add_argument("--style", default="", help="Art style for the visual post.")
    gen.add_argument(
        "--recognize",
        action="store_true",
        help="Fill the product name from the first photo when --name is not given.",
    )
    gen.add_argument("--out", default=None, help="Write the full result JSON here.")
    gen.add_argument("--log", default=None, help="Diagnostics log path (JSONL).")
    gen.set_defaults(_handler=_cmd_generate)

    rec = subparsers.add_parser(
        "recognize",
        help="Print the product name recognized in one photo (may be empty).",
    )
    _add_common(rec)
    rec.add_argument("--image", required=True, help="Product photo.")
    rec.set_defaults(_handler=_cmd_recognize)

    srv = subparsers.add_parser(
        "serve",
        help="Serve the HTTP API.",
    )
    _add_common(srv)
    srv.add_argument("--host", default="127.0.0.1")
    srv.add_argument("--port", type=int, default=8000)
    srv.add_argument("--log", default=None, help="Diagnostics log path (JSONL); stderr if omitted.")
    srv.set_defaults(_handler=_cmd_serve)

    return parser


def _eprint(message: str) -> None:
    print(message, file=sys.stderr)


def _build_orchestrator(
    cfg: AppConfig,
    secrets: RuntimeSecrets,
    *,
    logger: RunLogger | None,
    offline: bool,
) -> PostOrchestrator:
    client: Any = None
    if offline:
        from .offline import OfflineOpenAIClient

        client = OfflineOpenAIClient()

    backend = OpenAIPostBackend(
        secrets.openai_api_key,
        openai_cfg=cfg.openai,
        prompts_cfg=cfg.prompts,
        client=client,
        logger=logger,
    )
    return PostOrchestrator(backend, logger=logger, config_hash=config_sha256(cfg))


def _write_visual(data_uri: str, out_path: Path) -> Path:
    header, _, payload = data_uri.partition(",")
    mime = header.removeprefix("data:").split(";", 1)[0]
    ext = mime.split("/", 1)[-1] or "png"
    image_path = out_path.with_name(f"{out_path.stem}.visual.{ext}")
    image_path.write_bytes(base64.b64decode(payload))
    return image_path


async def _run_generate(orchestrator: PostOrchestrator, args: argparse.Namespace) -> GeneratedPosts:
    name = (args.name or "").strip()

    async with DraftSession(orchestrator, auto_recognize=bool(args.recognize) and not name) as draft:
        await draft.add_images([Path(p) for p in args.images])
        if args.logo:
            await draft.set_logo(Path(args.logo))

        if name:
            draft.product_name = name
        draft.price = args.price
        draft.target_audience = args.audience
        draft.promotion = args.promotion
        draft.style = args.style

        return await draft.submit()


def _cmd_generate(args: argparse.Namespace) -> int:
    out_path = Path(args.out) if args.out else None
    if args.log:
        log_path = Path(args.log)
    elif out_path is not None:
        log_path = out_path.parent / _DEFAULT_LOG_NAME
    else:
        log_path = Path.cwd() / _DEFAULT_LOG_NAME

    with RunLogger.open(log_path) as log:
        log.info(
            "generate_command_started",
            config_path=str(args.config),
            images=[str(p) for p in args.images],
            logo=args.logo,
            offline=bool(args.offline),
        )

        try:
            cfg = load_config(args.config)
            secrets = resolve_runtime_secrets(cfg)
            orchestrator = _build_orchestrator(cfg, secrets, logger=log, offline=bool(args.offline))

            posts = asyncio.run(_run_generate(orchestrator, args))

            visual_file: Path | None = None
            if out_path is not None:
                out_path.parent.mkdir(parents=True, exist_ok=True)
                if posts.visual_post_url:
                    visual_file = _write_visual(posts.visual_post_url, out_path)
                out_path.write_text(
                    json.dumps(posts.model_dump(mode="json"), indent=2, ensure_ascii=False),
                    encoding="utf-8",
                )

            log.info(
                "generate_command_completed",
                has_visual=posts.visual_post_url is not None,
                out=str(out_path) if out_path else None,
            )
        except Exception as e:
            log.exception("generate_command_failed", exc=e)
            raise

    summary = {
        "instagram": posts.instagram,
        "facebook": posts.facebook,
        "twitter": posts.twitter,
        "has_visual": posts.visual_post_url is not None,
        "visual_post_file": str(visual_file) if visual_file else None,
    }
    print(json.dumps(summary, indent=2, ensure_ascii=False))
    return 0


async def _run_recognize(orchestrator: PostOrchestrator, image: str) -> str:
    part = await encode_image(Path(image))
    return await orchestrator.recognize_product([part])


def _cmd_recognize(args: argparse.Namespace) -> int:
    cfg = load_config(args.config)
    secrets = resolve_runtime_secrets(cfg)
    orchestrator = _build_orchestrator(cfg, secrets, logger=None, offline=bool(args.offline))

    name = asyncio.run(_run_recognize(orchestrator, args.image))
    print(f"product_name={name}")
    return 0


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from .web import create_app

    cfg = load_config(args.config)
    secrets = resolve_runtime_secrets(cfg)

    log = RunLogger.open(args.log) if args.log else RunLogger.to_stderr()
    try:
        orchestrator = _build_orchestrator(cfg, secrets, logger=log, offline=bool(args.offline))
        log.info("serve_command_started", host=args.host, port=args.port, offline=bool(args.offline))
        uvicorn.run(create_app(orchestrator), host=args.host, port=int(args.port))
    finally:
        log.close()
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        handler = getattr(args, "_handler")
        return int(handler(args))
    except ConfigError as e:
        _eprint(str(e))
        return 2
    except (InputError, EncodingError, GenerationError, LLMError) as e:
        _eprint(str(e))
        return 3
    except KeyboardInterrupt:
        _eprint("Interrupted")
        return 130
    except Exception as e:
        _eprint(f"Unexpected error: {e}")
        return 1
