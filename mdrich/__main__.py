# mdrich/__main__.py
from mdrich.cli import main

main()
