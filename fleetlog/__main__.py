from fleetlog.cli import run

run()
