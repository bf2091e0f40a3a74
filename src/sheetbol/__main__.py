from sheetbol.cli import main

main()
