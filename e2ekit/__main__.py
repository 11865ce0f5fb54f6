from e2ekit.cli import main

raise SystemExit(main())
