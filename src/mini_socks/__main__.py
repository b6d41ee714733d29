from mini_socks.cmd.cli import app

app(prog_name="mini-socks")
