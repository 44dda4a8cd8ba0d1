from fsmonitor_hook.cli import main

raise SystemExit(main())
