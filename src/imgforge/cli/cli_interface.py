"""
ImgForge CLI Interface
Command-line interface for building and flashing images through the ImgForge service
"""

import click
import sys
from pathlib import Path
from typing import Optional, Sequence

from colorama import init, Fore, Style

from imgforge import __version__
from imgforge.core.api_client import ImgForgeClient
from imgforge.core.config import Config
from imgforge.core.create_wizard import CreateImageWizard, EXTRA_SIZE_CHOICES
from imgforge.core.errors import ImgForgeError
from imgforge.core.flash_wizard import FlashImageWizard, ERASE_WARNING
from imgforge.core.logger import setup_logging
from imgforge.core.models import BoardType, BuildMode, ImageSource, JobStatus, PresetImage
from imgforge.core.wizard import JobWizard
from imgforge.utils.formatting import format_date, format_size

init()


def _fail(message: str, code: int = 1):
    click.echo(f"{Fore.RED}❌ {message}{Style.RESET_ALL}", err=True)
    sys.exit(code)


def _rule(char: str = "─"):
    click.echo(f"{Fore.CYAN}{char * 60}{Style.RESET_ALL}")


def _advance(wizard: JobWizard):
    """Move to the next step or stop with the step's reason"""
    ok, reason = wizard.can_go_next()
    if not ok or not wizard.advance():
        _fail(reason or "Cannot continue")


def _step_heading(wizard: JobWizard):
    step = wizard.current_step_implementation()
    click.echo()
    click.echo(f"{Fore.BLUE}{Style.BRIGHT}Step {wizard.current_step} of {wizard.total_steps}: "
               f"{step.title}{Style.RESET_ALL}")
    if step.description:
        click.echo(f"{Fore.CYAN}{step.description}{Style.RESET_ALL}")


def _pick(label: str, options: Sequence[str]) -> int:
    """Numbered menu; returns the zero-based index of the choice"""
    for i, option in enumerate(options, 1):
        click.echo(f"  {i}. {option}")
    choice = click.prompt(f"{Fore.YELLOW}{label}{Style.RESET_ALL}",
                          type=click.IntRange(1, len(options)))
    return choice - 1


def _echo_log_line(line: str):
    if line.startswith("✅"):
        click.echo(f"{Fore.GREEN}{line}{Style.RESET_ALL}")
    elif line.startswith("❌"):
        click.echo(f"{Fore.RED}{line}{Style.RESET_ALL}")
    else:
        click.echo(f"   {line}")


def _run_job(wizard: JobWizard) -> JobStatus:
    """Run the wizard's job in the foreground, offering a manual retry after a failure"""
    noun = wizard.job_kind.noun
    wizard.tracker.log_appended.connect(_echo_log_line)

    while True:
        click.echo(f"{Fore.BLUE}🚀 Starting {noun.lower()} process...{Style.RESET_ALL}")
        if not wizard.start_job(background=False):
            _fail(f"{noun} could not be started")

        status = wizard.job_status
        if status is JobStatus.SUCCESS:
            return status

        if not click.confirm(f"{Fore.YELLOW}Try again?{Style.RESET_ALL}", default=False):
            return status
        wizard.retry_job()


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--config', '-c', help='Configuration file path')
@click.option('--server', '-s', help='ImgForge service URL (e.g. http://localhost:3001)')
@click.pass_context
def cli(ctx, verbose, config, server):
    """ImgForge - guided OS image creation and device flashing"""
    ctx.ensure_object(dict)

    if 'config' not in ctx.obj:
        ctx.obj['config'] = Config(config)
    app_config = ctx.obj['config']
    if server:
        app_config.set_server_url(server)

    # Setup logging
    log_level = "DEBUG" if verbose else app_config.get("log_level", "INFO")
    if not ctx.obj.get('logging_configured'):
        setup_logging(log_dir=app_config.get_log_dir(), level=log_level)
        ctx.obj['logging_configured'] = True

    if 'client' not in ctx.obj:
        ctx.obj['client'] = ImgForgeClient(app_config)

    click.echo(f"{Fore.CYAN}┌─────────────────────────────────────────┐{Style.RESET_ALL}")
    click.echo(f"{Fore.CYAN}│{Style.RESET_ALL} {Fore.BLUE}{Style.BRIGHT}ImgForge CLI v{__version__}{Style.RESET_ALL}"
               f"                   {Fore.CYAN}│{Style.RESET_ALL}")
    click.echo(f"{Fore.CYAN}└─────────────────────────────────────────┘{Style.RESET_ALL}")

    if verbose:
        click.echo(f"{Fore.YELLOW}🔍 Verbose mode enabled{Style.RESET_ALL}")
        click.echo(f"{Fore.YELLOW}   Service: {app_config.server_url}{Style.RESET_ALL}")


@cli.command()
@click.pass_context
def health(ctx):
    """Check that the ImgForge service is reachable"""
    client = ctx.obj['client']
    try:
        status = client.health()
    except ImgForgeError as e:
        _fail(str(e))

    click.echo(f"{Fore.GREEN}✅ Service is up{Style.RESET_ALL}")
    for key, value in (status or {}).items():
        click.echo(f"   {key}: {Fore.WHITE}{value}{Style.RESET_ALL}")


@cli.command()
@click.pass_context
def images(ctx):
    """List images in the service's image store"""
    client = ctx.obj['client']
    try:
        stored = client.list_stored_images()
    except ImgForgeError as e:
        _fail(f"Failed to load images: {e}")

    if not stored:
        click.echo(f"{Fore.YELLOW}⚠️  No images yet.{Style.RESET_ALL}")
        click.echo(f"{Fore.CYAN}💡 Create one with 'imgforge create' or upload one with 'imgforge upload'.{Style.RESET_ALL}")
        return

    click.echo(f"{Fore.GREEN}✅ Found {len(stored)} image(s):{Style.RESET_ALL}")
    _rule()
    for i, image in enumerate(stored, 1):
        click.echo(f"{Style.BRIGHT}{i}. {image.name}{Style.RESET_ALL}")
        click.echo(f"   📁 Path: {Fore.WHITE}{image.path}{Style.RESET_ALL}")
        click.echo(f"   💾 Size: {Fore.WHITE}{format_size(image.size_mb)}{Style.RESET_ALL}")
        if image.modified:
            click.echo(f"   📅 Modified: {Fore.WHITE}{format_date(image.modified)}{Style.RESET_ALL}")


@cli.command()
@click.pass_context
def devices(ctx):
    """List removable devices attached to the service host"""
    client = ctx.obj['client']
    click.echo(f"{Fore.BLUE}🔍 Scanning for devices...{Style.RESET_ALL}")
    try:
        found = client.list_devices()
    except ImgForgeError as e:
        _fail(f"Failed to load devices: {e}")

    if not found:
        click.echo(f"{Fore.YELLOW}⚠️  No removable devices found.{Style.RESET_ALL}")
        return

    click.echo(f"{Fore.GREEN}✅ Found {len(found)} device(s):{Style.RESET_ALL}")
    _rule()
    for i, device in enumerate(found, 1):
        click.echo(f"{Style.BRIGHT}{i}. {device.name}{Style.RESET_ALL}")
        click.echo(f"   📁 Path: {Fore.WHITE}{device.path}{Style.RESET_ALL}")
        click.echo(f"   💾 Size: {Fore.WHITE}{device.size}{Style.RESET_ALL}")


@cli.command()
@click.pass_context
def networks(ctx):
    """List Wi-Fi networks visible to the service host"""
    client = ctx.obj['client']
    try:
        names = client.list_network_names()
    except ImgForgeError as e:
        _fail(f"Failed to load Wi-Fi networks: {e}")

    if not names:
        click.echo(f"{Fore.YELLOW}⚠️  No Wi-Fi networks found.{Style.RESET_ALL}")
        return
    for name in names:
        click.echo(f"   📶 {name}")


@cli.command()
@click.pass_context
def jobs(ctx):
    """List jobs known to the service"""
    client = ctx.obj['client']
    try:
        handles = client.list_jobs()
    except ImgForgeError as e:
        _fail(f"Failed to load jobs: {e}")

    if not handles:
        click.echo("No jobs.")
        return
    for handle in handles:
        click.echo(f"{handle.id}  {handle.status:<10}  {handle.created_at or ''}")


@cli.command()
@click.argument('job_id')
@click.pass_context
def job(ctx, job_id):
    """Show one job"""
    client = ctx.obj['client']
    try:
        handle = client.get_job(job_id)
    except ImgForgeError as e:
        _fail(f"Failed to load job {job_id}: {e}")

    click.echo(f"   ID: {Fore.WHITE}{handle.id}{Style.RESET_ALL}")
    click.echo(f"   Status: {Fore.WHITE}{handle.status}{Style.RESET_ALL}")
    if handle.created_at:
        click.echo(f"   Created: {Fore.WHITE}{handle.created_at}{Style.RESET_ALL}")


@cli.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def upload(ctx, file):
    """Upload a local image file to the service"""
    client = ctx.obj['client']
    click.echo(f"{Fore.BLUE}📤 Uploading {Path(file).name}...{Style.RESET_ALL}")
    try:
        server_path = client.upload_image(file)
    except ImgForgeError as e:
        _fail(f"Upload failed: {e}")

    click.echo(f"{Fore.GREEN}✅ Uploaded to {server_path}{Style.RESET_ALL}")


@cli.command()
@click.option('--image', '-i', help='Path of a stored image on the service host')
@click.option('--upload', '-u', 'upload_file', type=click.Path(exists=True, dir_okay=False),
              help='Local image file to upload and flash')
@click.option('--device', '-d', help='Target device path')
@click.option('--yes', '-y', is_flag=True, help='Skip the device confirmation')
@click.pass_context
def flash(ctx, image, upload_file, device, yes):
    """Flash an image onto a removable device"""
    if image and upload_file:
        _fail("Use either --image or --upload, not both")

    wizard = FlashImageWizard(ctx.obj['client'], preselected_image=image)
    wizard.open()

    # Step 1: image
    _step_heading(wizard)
    if upload_file:
        click.echo(f"{Fore.BLUE}📤 Uploading {Path(upload_file).name}...{Style.RESET_ALL}")
        if not wizard.upload_image(upload_file):
            _fail(f"Upload failed: {wizard.last_upload_error}")
    elif image:
        wizard.choose_stored_image(image)
    else:
        stored = wizard.stored_images()
        if not stored:
            _fail("No stored images. Use --upload to flash a local file.")
        index = _pick("Select image number", [f"{i.name} ({format_size(i.size_mb)})" for i in stored])
        wizard.choose_stored_image(stored[index].path)
    click.echo(f"   Image: {Fore.WHITE}{wizard.image_path}{Style.RESET_ALL}")
    _advance(wizard)

    # Step 2: device
    _step_heading(wizard)
    found = wizard.scan_devices()
    if device:
        wizard.choose_device(device)
    else:
        if not found:
            _fail("No removable devices found.")
        index = _pick("Select device number", [f"{d.name} - {d.path} ({d.size})" for d in found])
        wizard.choose_device(found[index].path)
    _advance(wizard)

    # Step 3: confirm
    _step_heading(wizard)
    summary = wizard.confirmation_summary()
    _rule("═")
    click.echo(f"  📁 Image: {Fore.WHITE}{summary['image']}{Style.RESET_ALL}")
    click.echo(f"  🎯 Device: {Fore.WHITE}{summary['device_name'] or 'Unknown'}{Style.RESET_ALL}"
               f" ({summary['device_size'] or '?'})")
    click.echo(f"  📍 Device Path: {Fore.WHITE}{summary['device']}{Style.RESET_ALL}")
    _rule("═")

    if not yes:
        click.echo(f"{Fore.RED}{Style.BRIGHT}⚠️  {ERASE_WARNING}{Style.RESET_ALL}")
        click.echo(f"To proceed, type the {Style.BRIGHT}exact device path{Style.RESET_ALL}: "
                   f"{Fore.WHITE}{summary['device']}{Style.RESET_ALL}")
        confirmation_input = click.prompt(f"{Fore.YELLOW}Enter device path to confirm{Style.RESET_ALL}",
                                          type=str)
        if confirmation_input != summary['device']:
            click.echo(f"{Fore.RED}❌ Device path mismatch. Operation cancelled for safety.{Style.RESET_ALL}")
            wizard.close()
            sys.exit(0)

    status = _run_job(wizard)
    wizard.close()
    if status is not JobStatus.SUCCESS:
        sys.exit(1)


def _read_option_file(path: Optional[str]) -> str:
    if not path:
        return ""
    return Path(path).read_text()


@cli.command()
@click.option('--mode', type=click.Choice([m.value for m in BuildMode]),
              help='Build output: flash or artifact')
@click.option('--compose', 'compose_file', type=click.Path(exists=True, dir_okay=False),
              help='Docker Compose file to bake into the image')
@click.option('--script', 'script_file', type=click.Path(exists=True, dir_okay=False),
              help='Custom setup script to run inside the image')
@click.option('--command', 'inline_command', help='Single command to run inside the image')
@click.option('--yes', '-y', is_flag=True, help='Start the build without a final confirmation')
@click.pass_context
def create(ctx, mode, compose_file, script_file, inline_command, yes):
    """Create a customized OS image"""
    wizard = CreateImageWizard(ctx.obj['client'])
    wizard.open()

    # Step 1: board
    _step_heading(wizard)
    boards = list(BoardType)
    index = _pick("Select board type", [f"{b.label} - {b.description}" for b in boards])
    wizard.choose_board(boards[index])

    # Step 2: image source
    _step_heading(wizard)
    source = ImageSource(click.prompt("Image source", type=click.Choice([s.value for s in ImageSource]),
                                      default=ImageSource.PRESET.value))
    wizard.choose_image_source(source)
    if source is ImageSource.PRESET:
        presets = list(PresetImage)
        index = _pick("Select preset image", [p.label for p in presets])
        wizard.set_field("preset_image", presets[index])
    elif source is ImageSource.CUSTOM:
        wizard.set_field("custom_image_url", click.prompt("Custom image URL", type=str))
    else:
        stored = wizard.stored_images()
        if not stored:
            _fail("No stored images available")
        index = _pick("Select stored image", [f"{i.name} ({format_size(i.size_mb)})" for i in stored])
        wizard.set_field("stored_image", stored[index].path)
    _advance(wizard)

    # Step 3: basic configuration
    _step_heading(wizard)
    while True:
        wizard.set_field("hostname", click.prompt("Hostname", default=wizard.get_field("hostname")))
        ok, reason = wizard.check_step()
        if ok:
            break
        click.echo(f"{Fore.RED}❌ {reason}{Style.RESET_ALL}")
    if click.confirm("Change default username?", default=False):
        wizard.update_fields({"change_username": True,
                              "new_username": click.prompt("New username", type=str)})
    if click.confirm("Set root password?", default=False):
        wizard.update_fields({"set_root_password": True,
                              "root_password": click.prompt("Root password", hide_input=True,
                                                            confirmation_prompt=True)})
    wizard.set_field("enable_ssh", click.confirm("Enable SSH?", default=True))
    _advance(wizard)

    # Step 4: network & storage
    _step_heading(wizard)
    if click.confirm("Configure Wi-Fi?", default=False):
        names = wizard.network_names()
        if names:
            click.echo("Available Wi-Fi networks:")
            for name in names:
                click.echo(f"   📶 {name}")
        wizard.update_fields({
            "wifi_enabled": True,
            "wifi_ssid": click.prompt("Wi-Fi SSID", type=str),
            "wifi_password": click.prompt("Wi-Fi password", hide_input=True, default="",
                                          show_default=False),
        })
    expand = click.confirm("Add extra space for packages?", default=True)
    wizard.set_field("expand_image", expand)
    if expand:
        wizard.set_field("extra_size", click.prompt("Extra size", type=click.Choice(EXTRA_SIZE_CHOICES),
                                                    default=wizard.get_field("extra_size")))
    _advance(wizard)

    # Step 5: advanced options
    _step_heading(wizard)
    if mode:
        wizard.set_field("mode", BuildMode(mode))
    try:
        if compose_file:
            wizard.update_fields({"docker_compose_enabled": True,
                                  "docker_compose_content": _read_option_file(compose_file)})
        if script_file:
            wizard.update_fields({"custom_script_enabled": True,
                                  "custom_script_content": _read_option_file(script_file)})
    except OSError as e:
        _fail(f"Cannot read file: {e}")
    if inline_command:
        wizard.update_fields({"inline_command_enabled": True, "inline_command": inline_command})
    _advance(wizard)

    # Step 6: review & build
    _step_heading(wizard)
    _rule("═")
    for label, value in wizard.review_summary():
        click.echo(f"  {label + ':':<16}{Fore.WHITE}{value}{Style.RESET_ALL}")
    _rule("═")
    if not yes and not click.confirm(f"{Fore.YELLOW}Start build?{Style.RESET_ALL}", default=True):
        click.echo(f"{Fore.GREEN}✅ Build cancelled.{Style.RESET_ALL}")
        wizard.close()
        return

    status = _run_job(wizard)
    wizard.close()
    if status is not JobStatus.SUCCESS:
        sys.exit(1)


if __name__ == '__main__':
    cli()
