from actionreplay.cli.main import app

app()
