"""
Command Line Interface for streaming generation.
"""

import argparse
import asyncio
import base64
import logging
import os
from mimetypes import guess_type
from typing import Dict, List, Optional, Tuple

from .errors import SwarmError
from .request_builder import OptionValue
from .stream_progress import StreamProgress
from .swarm_client import SwarmClient
from .swarm_config import SwarmConfig


# Video settings the animation command starts from; -O overrides any of them.
ANIMATION_DEFAULTS: Dict[str, OptionValue] = {
    'prompt': 'clear vibrant text',
    'negativeprompt': 'blurry',
    'images': 1,
    'donotsave': True,
    'width': 1024,
    'height': 768,
    'cfgscale': 6.5,
    'steps': 1,
    'seed': -1,
    'sampler': 'dpmpp_3m_sde_gpu',
    'scheduler': 'karras',
    'init_image_creativity': 0,
    'video_model': 'OfficialStableDiffusion/svd_xt_1_1.safetensors',
    'video_format': 'gif',
    'videopreviewtype': 'animate',
    'videoresolution': 'image',
    'videoboomerang': True,
    'video_frames': 25,
    'video_fps': 60,
    'video_steps': 22,
    'video_cfg': 2.5,
    'video_min_cfg': 1,
    'video_motion_bucket': 127,
}


def setup_logging(verbose: bool) -> logging.Logger:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    
    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    
    logging.getLogger('aiohttp').setLevel(logging.WARNING)
    logging.getLogger('PIL').setLevel(logging.WARNING)
    
    return logging.getLogger('swarmgen')


def parse_option_value(text: str) -> OptionValue:
    """Type a command-line option value as boolean, number, unset or text."""
    lowered = text.strip().lower()
    if lowered in ('true', 'false'):
        return lowered == 'true'
    if lowered in ('none', 'null'):
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return text


def parse_option(text: str) -> Tuple[str, OptionValue]:
    """Parse a KEY=VALUE argument."""
    key, sep, value = text.partition('=')
    if not sep or not key.strip():
        raise argparse.ArgumentTypeError(f"Expected KEY=VALUE, got {text!r}")
    return key.strip(), parse_option_value(value)


def get_config(args: argparse.Namespace) -> SwarmConfig:
    """Get backend configuration from environment and CLI overrides."""
    config = SwarmConfig.from_env()
    
    if getattr(args, 'url', None) is not None:
        config.base_url = args.url
    if getattr(args, 'frequency', None) is not None:
        config.preview_frequency = args.frequency
    if getattr(args, 'strict', False):
        config.strict_batches = True
    if getattr(args, 'timeout', None) is not None:
        config.timeout = args.timeout
    
    return config


def build_options(args: argparse.Namespace, defaults: Optional[Dict[str, OptionValue]] = None) -> Dict[str, OptionValue]:
    """Merge defaults, named flags and -O pairs into one option mapping."""
    options: Dict[str, OptionValue] = dict(defaults or {})
    
    for name in ('prompt', 'negativeprompt', 'images', 'model', 'width', 'height', 'steps', 'seed'):
        value = getattr(args, name, None)
        if value is not None:
            options[name] = value
    
    for key, value in args.option or []:
        options[key] = value
    
    return options


def encode_init_image(path: str) -> str:
    """Read an image file as a data URI."""
    mime_type = guess_type(path)[0] or 'image/png'
    with open(path, 'rb') as f:
        encoded = base64.b64encode(f.read()).decode('ascii')
    return f"data:{mime_type};base64,{encoded}"


def _load_config(args: argparse.Namespace, logger: logging.Logger) -> Optional[SwarmConfig]:
    config = get_config(args)
    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(error)
        return None
    return config


async def _run_generate(client: SwarmClient, options, output_dir: str, progress: Optional[StreamProgress]) -> int:
    previews = 0
    async for result in client.generate_images(options, progress=progress):
        if result.error is not None:
            return 1
        if not result.has_image:
            continue
        if result.is_final:
            path = os.path.join(output_dir, 'final.png')
        else:
            previews += 1
            path = os.path.join(output_dir, f'preview_{previews:03d}.png')
        result.image.save(path)
    return 0


async def _run_animate(client: SwarmClient, options, output_dir: str, progress: Optional[StreamProgress]) -> int:
    frames = 0
    async for frame in client.generate_animation(options, progress=progress):
        if frame.error is not None:
            return 1
        if frame.is_final:
            path = os.path.join(output_dir, f'final.{frame.extension}')
        else:
            frames += 1
            path = os.path.join(output_dir, f'frame_{frames:03d}.{frame.extension}')
        with open(path, 'wb') as f:
            f.write(frame.data)
    return 0


def cmd_session(args: argparse.Namespace) -> int:
    """Execute session command."""
    logger = setup_logging(args.verbose)
    config = _load_config(args, logger)
    if config is None:
        return 1
    
    try:
        token = asyncio.run(SwarmClient(config, logger=logger).acquire_session())
    except SwarmError as e:
        logger.error(f"Session request failed: {e}")
        return 1
    
    print(token)
    return 0


def cmd_generate(args: argparse.Namespace) -> int:
    """Execute generate command."""
    logger = setup_logging(args.verbose)
    config = _load_config(args, logger)
    if config is None:
        return 1
    
    options = build_options(args)
    if 'prompt' not in options:
        logger.error("A prompt is required (--prompt or -O prompt=...)")
        return 1
    
    os.makedirs(args.output_dir, exist_ok=True)
    logger.info(f"Backend: {config.base_url}")
    logger.info(f"Output: {args.output_dir}")
    logger.info(f"Preview frequency: every {config.preview_frequency} batch(es)")
    
    progress = None
    if not args.quiet:
        progress = StreamProgress(show_ticks=args.show_ticks, logger=logger)
    
    try:
        client = SwarmClient(config, logger=logger)
        return asyncio.run(_run_generate(client, options, args.output_dir, progress))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except SwarmError as e:
        logger.error(f"Generation failed: {e}")
        return 1


def cmd_animate(args: argparse.Namespace) -> int:
    """Execute animate command."""
    logger = setup_logging(args.verbose)
    config = _load_config(args, logger)
    if config is None:
        return 1
    
    try:
        init_image = encode_init_image(args.init_image)
    except OSError as e:
        logger.error(f"Cannot read init image: {e}")
        return 1
    
    options = build_options(args, defaults=ANIMATION_DEFAULTS)
    options['initimage'] = init_image
    
    os.makedirs(args.output_dir, exist_ok=True)
    logger.info(f"Backend: {config.base_url}")
    logger.info(f"Output: {args.output_dir}")
    
    progress = None
    if not args.quiet:
        progress = StreamProgress(logger=logger)
    
    try:
        client = SwarmClient(config, logger=logger)
        exit_code = asyncio.run(_run_animate(client, options, args.output_dir, progress))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except SwarmError as e:
        logger.error(f"Animation failed: {e}")
        return 1
    
    if progress:
        print()
        print(f"Frames: {progress.stats.frames}")
        print(f"Dropped: {progress.stats.frames_dropped}")
        print(f"Time: {progress.stats.elapsed_seconds:.1f}s")
    
    return exit_code


def add_backend_arguments(parser: argparse.ArgumentParser) -> None:
    """Add backend configuration arguments to a parser."""
    group = parser.add_argument_group('Backend')
    group.add_argument('--url', help='Override SWARM_URL')
    group.add_argument('--timeout', type=float, help='Override SWARM_TIMEOUT (seconds)')


def add_generation_arguments(parser: argparse.ArgumentParser) -> None:
    """Add generation option arguments to a parser."""
    parser.add_argument('-p', '--prompt', help='Prompt text')
    parser.add_argument('--negativeprompt', help='Negative prompt text')
    parser.add_argument('--model', help='Model name')
    parser.add_argument('--width', type=int, help='Image width')
    parser.add_argument('--height', type=int, help='Image height')
    parser.add_argument('--steps', type=int, help='Sampling steps')
    parser.add_argument('--seed', type=int, help='Seed (-1 for random)')
    parser.add_argument('-O', '--option', action='append', type=parse_option, metavar='KEY=VALUE',
                        help='Extra backend option (repeatable; VALUE typed as bool/int/float/text)')
    parser.add_argument('-o', '--output-dir', default='output', help='Directory for results')
    parser.add_argument('-q', '--quiet', action='store_true', help='Suppress progress output')
    parser.add_argument('-v', '--verbose', action='store_true', default=argparse.SUPPRESS,
                        help='Enable verbose logging')


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog='swarmgen',
        description='Streaming client for a generative-image backend',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  python -m swarmgen session
  python -m swarmgen generate --prompt "a lighthouse at dusk" --images 4
  python -m swarmgen animate --init-image start.png

Configuration:
  SWARM_URL, SWARM_PREVIEW_FREQUENCY, SWARM_STRICT_BATCHES, SWARM_TIMEOUT
"""
    )
    
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    
    subparsers = parser.add_subparsers(dest='command', help='Command to run')
    
    # Session command
    session_parser = subparsers.add_parser('session', help='Acquire and print a session token')
    session_parser.add_argument('-v', '--verbose', action='store_true', default=argparse.SUPPRESS,
                                help='Enable verbose logging')
    add_backend_arguments(session_parser)
    
    # Generate command
    gen_parser = subparsers.add_parser('generate', help='Generate an image batch with streamed previews')
    gen_parser.add_argument('-n', '--images', type=int, default=4, help='Images per batch (default: 4)')
    gen_parser.add_argument('-f', '--frequency', type=int, help='Override SWARM_PREVIEW_FREQUENCY')
    gen_parser.add_argument('--strict', action='store_true',
                            help='Only treat a batch as complete once all four slots arrived')
    gen_parser.add_argument('--show-ticks', action='store_true', help='Print empty preview ticks too')
    add_generation_arguments(gen_parser)
    add_backend_arguments(gen_parser)
    
    # Animate command
    anim_parser = subparsers.add_parser('animate', help='Generate an animation from an init image')
    anim_parser.add_argument('-i', '--init-image', required=True, help='Image to animate')
    add_generation_arguments(anim_parser)
    add_backend_arguments(anim_parser)
    
    return parser


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)
    
    if not parsed_args.command:
        parser.print_help()
        return 1
    
    if parsed_args.command == 'session':
        return cmd_session(parsed_args)
    elif parsed_args.command == 'generate':
        return cmd_generate(parsed_args)
    elif parsed_args.command == 'animate':
        return cmd_animate(parsed_args)
    
    return 1
