from plugdeck.cli import main

main()
