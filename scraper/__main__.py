from scraper.main import cli

cli()
