from servicegen.cli import main

main()
