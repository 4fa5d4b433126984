from ledger_analyst.cli import run

run()
