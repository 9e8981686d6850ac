from daynotes.main import main

raise SystemExit(main())
