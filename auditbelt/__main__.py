from auditbelt.cli import app

app(prog_name="auditbelt")
