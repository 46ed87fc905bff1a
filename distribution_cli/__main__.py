from distribution_cli.main import main

raise SystemExit(main())
