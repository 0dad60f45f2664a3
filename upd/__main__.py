from upd.cli import main

main()
