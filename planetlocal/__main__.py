from planetlocal.cli import main

main()
