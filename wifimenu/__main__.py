from wifimenu.cli import run

run()
