from k2think.main import cli

cli(prog_name="k2think")
