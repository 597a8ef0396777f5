from pattern_probe.cli import app

app()
