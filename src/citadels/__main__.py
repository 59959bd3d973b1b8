from citadels.cli import main

raise SystemExit(main())
