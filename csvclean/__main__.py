from .main import run_cli

run_cli()
