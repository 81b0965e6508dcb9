from robin_sync.cli.main import app

app()
