import click
from rich.console import Console

from config_manager import ConfigManager
from core.session_builder import SessionBuilder
from utils.storage_utils import StorageError


@click.group(invoke_without_command=True)
@click.option('-c', '--conf', default=None, help='Path to a custom configuration file')
@click.option('-m', '--model', default='', help='Model to chat with (section name or model id)')
@click.option('--db', default=None, help='Path to the conversation database')
@click.pass_context
def cli(ctx, conf, model, db):
    """
    the main entry point for the CLI click interface
    """
    ctx.ensure_object(dict)  # set up the context object to be passed around

    try:
        config_manager = ConfigManager(conf)
    except FileNotFoundError as e:
        raise click.ClickException(str(e))
    ctx.obj['CONFIG_MANAGER'] = config_manager
    ctx.obj['BUILDER'] = SessionBuilder(config_manager)

    options = {}
    if model:
        # Fail fast on an unknown model
        normalized = config_manager.create_session_config().normalize_model_name(model)
        if not normalized:
            raise click.ClickException(
                f"Unknown model '{model}'. Run 'python main.py list-models' to see available models."
            )
        options['model'] = normalized
    ctx.obj['OPTIONS'] = options
    ctx.obj['DB'] = db

    # Chat is the default command
    if ctx.invoked_subcommand is None:
        ctx.invoke(chat)


def _build_session(ctx, console=None):
    builder = ctx.obj['BUILDER']
    return builder.build(console=console, db_path=ctx.obj.get('DB'), **ctx.obj.get('OPTIONS', {}))


@cli.command()
@click.pass_context
def chat(ctx):
    """Start an interactive chat"""
    session = _build_session(ctx)
    from modes.chat_mode import ChatMode
    ChatMode(session).start()


@cli.command()
@click.argument('prompt', required=False, default='')
@click.option('-i', '--image', 'images', multiple=True, help='Image whose text is added to the prompt')
@click.option('--no-typewriter', is_flag=True, default=False, help='Print the reply at once')
@click.pass_context
def ask(ctx, prompt, images, no_typewriter):
    """Send one message and print the reply"""
    session = _build_session(ctx)
    for path in images:
        try:
            session.add_image(path)
        except ValueError as e:
            raise click.ClickException(str(e))

    from core.turns import TurnRunner
    from ui.typewriter_display import TypewriterDisplay
    try:
        result = TurnRunner(session).run_user_turn(prompt)
    except ValueError as e:
        raise click.UsageError(str(e))
    except (RuntimeError, StorageError) as e:
        raise click.ClickException(str(e))

    display = TypewriterDisplay(session.console, config=session.config, logger=session.logger)
    display.show(result.text, animate=False if no_typewriter else None)


@cli.command()
@click.pass_context
@click.option('-a', '--all', 'showall', is_flag=True, help="Show all models")
@click.option('-d', '--details', is_flag=True, help="Show model details")
def list_models(ctx, showall, details):
    """
    list the available models
    """
    config_manager = ctx.obj['CONFIG_MANAGER']
    models = config_manager.list_models(active_only=not showall)

    for section, options in models.items():
        if details:
            click.echo()
            click.echo(f'[ {section} ]')
            for option, value in options.items():
                click.echo(f'{option} = {value}')
        elif options.get('default'):
            click.echo(f'{section} (default)')
        else:
            click.echo(section)


@cli.command()
@click.pass_context
def conversations(ctx):
    """
    list saved conversations, most recent first
    """
    session = _build_session(ctx)
    convs = session.store.list_conversations()
    if not convs:
        click.echo('No conversations yet.')
        return
    for idx, conv in enumerate(convs, start=1):
        click.echo(f"{idx:>3}  {conv.updated_at[:19].replace('T', ' ')}  {conv.title}")


@cli.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def render(ctx, file):
    """
    render a markdown-ish file the way replies are shown
    """
    config_manager = ctx.obj['CONFIG_MANAGER']
    session_config = config_manager.create_session_config(ctx.obj.get('OPTIONS'))
    with open(file, 'r', encoding='utf-8') as fh:
        text = fh.read()

    from ui.typewriter_display import TypewriterDisplay
    display = TypewriterDisplay(Console(), config=session_config)
    display.show(text, animate=False)


# take care of business
if __name__ == "__main__":
    cli(obj={})
