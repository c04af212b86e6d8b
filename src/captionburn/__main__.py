from captionburn.cli.main import _main

_main()
