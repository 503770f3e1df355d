from mapsight.cli import main

main()
