from timora.cli.timora_cli import main

main()
