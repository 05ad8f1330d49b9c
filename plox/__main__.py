from plox.main import main

main()
